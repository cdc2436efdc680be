"""Favorite locations store."""

import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional

from weather_lookup.errors import NotFound, StorageError
from weather_lookup.favorites.repository import FavoriteRepository
from weather_lookup.weather.models import Location

logger = logging.getLogger(__name__)


class FavoriteEvent(str, Enum):
    """Kind of change applied to the favorites."""
    INSERTED = "inserted"
    REMOVED = "removed"
    UPDATED = "updated"
    CLEARED = "cleared"


FavoriteListener = Callable[[FavoriteEvent, Optional[Location]], None]


class FavoriteStore:
    """In-memory favorites backed by a durable repository.

    Favorites are unique by identity key. Each mutation is committed to the
    repository before the call returns. A failed commit is logged and
    reported through the return value; the in-memory change is kept, so the
    store may be ahead of durable storage until the next successful commit.

    Listeners registered with subscribe() are called after every applied
    mutation.
    """

    def __init__(self, repository: FavoriteRepository):
        """Initialize the store and load the persisted favorites.

        Args:
            repository: Durable storage backend

        Raises:
            StorageError: If the persisted favorites cannot be read
        """
        self.repository = repository
        # Single writer at a time keeps identities unique
        self._lock = threading.RLock()
        self._favorites: Dict[str, Location] = {}
        self._listeners: List[FavoriteListener] = []
        self.reload()

    def reload(self) -> None:
        """Replace the in-memory favorites with the persisted ones."""
        with self._lock:
            self._favorites = {location.identity: location for location in self.repository.load_all()}
        logger.info(f"Loaded {len(self._favorites)} favorites")

    def list(self) -> List[Location]:
        """Return the favorites ordered by latitude, then longitude."""
        with self._lock:
            return sorted(self._favorites.values(), key=lambda location: (location.latitude, location.longitude))

    def get(self, identity: str) -> Location:
        """Return the stored favorite for an identity key.

        Raises:
            NotFound: If no favorite has this identity
        """
        with self._lock:
            location = self._favorites.get(identity)
        if location is None:
            raise NotFound(f"No favorite with identity {identity}")
        return location

    def contains(self, identity: str) -> bool:
        with self._lock:
            return identity in self._favorites

    def __len__(self) -> int:
        return len(self._favorites)

    def insert(self, location: Location) -> bool:
        """Add a location to the favorites.

        Inserting an identity that is already stored is a logged no-op.

        Returns:
            False if the durable commit failed, True otherwise
        """
        identity = location.identity
        with self._lock:
            if identity in self._favorites:
                logger.warning(f"Location {identity} already exists in favorites")
                return True
            self._favorites[identity] = location
            committed = self._commit(self.repository.save, location)

        logger.info(f"Added favorite {location.display_name} ({identity})")
        self._notify(FavoriteEvent.INSERTED, location)
        return committed

    def remove(self, location: Location) -> bool:
        """Remove the favorite matching a location's identity."""
        return self.discard(location.identity)

    def discard(self, identity: str) -> bool:
        """Remove the favorite with an identity key, if present.

        Returns:
            False if the durable commit failed, True otherwise
        """
        with self._lock:
            location = self._favorites.pop(identity, None)
            if location is None:
                logger.info(f"Favorite {identity} not found, nothing to remove")
                return True
            committed = self._commit(self.repository.delete, identity)

        logger.info(f"Removed favorite {location.display_name} ({identity})")
        self._notify(FavoriteEvent.REMOVED, location)
        return committed

    def update_snapshot(
        self,
        identity: str,
        temperature: Optional[float],
        precipitation_probability: Optional[int],
        precipitation: Optional[float]
    ) -> bool:
        """Refresh the cached conditions of a stored favorite in place.

        Args:
            identity: Identity key of the favorite
            temperature: Current temperature in Fahrenheit
            precipitation_probability: Current precipitation probability in %
            precipitation: Current precipitation in mm

        Returns:
            False if the durable commit failed, True otherwise

        Raises:
            NotFound: If no favorite has this identity
        """
        with self._lock:
            location = self._favorites.get(identity)
            if location is None:
                raise NotFound(f"No favorite with identity {identity}")

            location.current_temperature = temperature
            location.current_precipitation_probability = precipitation_probability
            location.current_precipitation_amount = precipitation
            committed = self._commit(self.repository.save, location)

        logger.info(f"Updated snapshot for favorite {identity}: {temperature}F, {precipitation_probability}%, {precipitation}mm")
        self._notify(FavoriteEvent.UPDATED, location)
        return committed

    def clear(self) -> bool:
        """Remove every favorite."""
        with self._lock:
            self._favorites.clear()
            committed = self._commit(self.repository.delete_all)

        logger.info("Cleared all favorites")
        self._notify(FavoriteEvent.CLEARED, None)
        return committed

    def subscribe(self, listener: FavoriteListener) -> Callable[[], None]:
        """Register a listener called after every mutation.

        Returns:
            Callable that unregisters the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, operation: Callable, *args) -> bool:
        try:
            operation(*args)
            return True
        except StorageError as e:
            logger.error(f"Failed to commit favorites change: {e}")
            return False

    def _notify(self, event: FavoriteEvent, location: Optional[Location]) -> None:
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event, location)
            except Exception as e:
                logger.error(f"Favorites listener failed on {event.value}: {e}")
