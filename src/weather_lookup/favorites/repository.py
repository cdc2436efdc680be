"""Durable storage backends for favorite locations."""

import logging
import sqlite3
from typing import Dict, List, Protocol

from weather_lookup.errors import StorageError
from weather_lookup.weather.models import Location

logger = logging.getLogger(__name__)


class FavoriteRepository(Protocol):
    """Durable collection of favorites keyed by identity.

    Every mutating call commits before returning and raises StorageError
    when the commit fails.
    """

    def load_all(self) -> List[Location]:
        ...

    def save(self, location: Location) -> None:
        ...

    def delete(self, identity: str) -> None:
        ...

    def delete_all(self) -> None:
        ...


class SqliteFavoriteRepository:
    """Favorites kept in a single SQLite table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def load_all(self) -> List[Location]:
        try:
            rows = self.conn.execute(
                "SELECT * FROM favorites ORDER BY latitude, longitude"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to load favorites: {e}") from e
        return [self._row_to_location(row) for row in rows]

    def save(self, location: Location) -> None:
        address = location.address
        self._execute(
            "INSERT INTO favorites "
            "(identity, latitude, longitude, name, display_name, city, county, state, "
            "country, country_code, current_temperature, current_precipitation_probability, "
            "current_precipitation_amount) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(identity) DO UPDATE SET "
            "name = excluded.name, "
            "display_name = excluded.display_name, "
            "city = excluded.city, "
            "county = excluded.county, "
            "state = excluded.state, "
            "country = excluded.country, "
            "country_code = excluded.country_code, "
            "current_temperature = excluded.current_temperature, "
            "current_precipitation_probability = excluded.current_precipitation_probability, "
            "current_precipitation_amount = excluded.current_precipitation_amount",
            (
                location.identity,
                location.latitude,
                location.longitude,
                location.name,
                location.display_name,
                address.city,
                address.county,
                address.state,
                address.country,
                address.country_code,
                location.current_temperature,
                location.current_precipitation_probability,
                location.current_precipitation_amount,
            ),
        )

    def delete(self, identity: str) -> None:
        self._execute("DELETE FROM favorites WHERE identity = ?", (identity,))

    def delete_all(self) -> None:
        self._execute("DELETE FROM favorites")

    def _execute(self, sql: str, params: tuple = ()) -> None:
        # A failed commit leaves the change pending until the next commit
        try:
            self.conn.execute(sql, params)
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to commit favorites change: {e}") from e

    @staticmethod
    def _row_to_location(row: sqlite3.Row) -> Location:
        return Location(
            latitude=row["latitude"],
            longitude=row["longitude"],
            name=row["name"],
            display_name=row["display_name"],
            address={
                "city": row["city"],
                "county": row["county"],
                "state": row["state"],
                "country": row["country"],
                "country_code": row["country_code"],
            },
            current_temperature=row["current_temperature"],
            current_precipitation_probability=row["current_precipitation_probability"],
            current_precipitation_amount=row["current_precipitation_amount"],
        )


class InMemoryFavoriteRepository:
    """Dict-backed repository for tests and previews.

    Records are stored as copies so that, like a real database, the
    durable state only changes on save.
    """

    def __init__(self):
        self.records: Dict[str, Location] = {}

    def load_all(self) -> List[Location]:
        return [record.model_copy(deep=True) for record in self.records.values()]

    def save(self, location: Location) -> None:
        self.records[location.identity] = location.model_copy(deep=True)

    def delete(self, identity: str) -> None:
        self.records.pop(identity, None)

    def delete_all(self) -> None:
        self.records.clear()
