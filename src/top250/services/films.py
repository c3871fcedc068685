from __future__ import annotations

import logging
import secrets
import time
from dataclasses import asdict, dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from ..errors import IdentifierCollision, NotFound, StorageUnavailable, ValidationError
from ..storage import CollectionStore
from . import ranking
from .managers import Capability, Principal

logger = logging.getLogger(__name__)

FILMS_COLLECTION = "films"
MIN_YEAR = 1895
MAX_ID_ATTEMPTS = 5

REQUIRED_FIELDS = ("title", "rating", "year", "budget", "gross", "poster", "position")
EDITABLE_FIELDS = ("title", "rating", "year", "budget", "gross", "poster")


@dataclass
class Film:
    id: int
    title: str
    rating: str
    year: int
    budget: int
    gross: int
    poster: str
    position: int

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Film":
        names = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in record.items() if key in names})

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


class CatalogFeed(Protocol):
    def fetch_top(self) -> List[Film]: ...


def default_id_factory() -> int:
    return int(time.time() * 1000) + secrets.randbelow(1000)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require_int(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "must be an integer")
    return value


def _clean_field(field: str, value: Any) -> Any:
    if _is_blank(value):
        raise ValidationError(field, "is required")
    if field in ("title", "poster"):
        if not isinstance(value, str):
            raise ValidationError(field, "must be a string")
        return value.strip()
    if field == "rating":
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValidationError(field, "must be a decimal number")
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(field, "must be a decimal number") from None
        if not parsed.is_finite():
            raise ValidationError(field, "must be a decimal number")
        return str(value).strip()
    number = _require_int(field, value)
    if field == "year" and number < MIN_YEAR:
        raise ValidationError(field, f"must be {MIN_YEAR} or later")
    if field in ("budget", "gross") and number < 0:
        raise ValidationError(field, "must not be negative")
    if field == "position" and number < 1:
        raise ValidationError(field, "must be 1 or greater")
    return number


def validate_candidate(candidate: Mapping[str, Any]) -> Dict[str, Any]:
    """Check a new film payload and return the cleaned fields."""
    return {name: _clean_field(name, candidate.get(name)) for name in REQUIRED_FIELDS}


def validate_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Check only the fields present in a partial update."""
    return {
        name: _clean_field(name, patch[name])
        for name in (*EDITABLE_FIELDS, "position")
        if name in patch
    }


class RankedStore:
    """Films ranked by a dense 1..N ``position``.

    Nothing is cached between calls: each operation loads the collection,
    works on the copy and saves it back while holding the collection lock.
    """

    def __init__(
        self,
        store: CollectionStore,
        *,
        collection: str = FILMS_COLLECTION,
        id_factory: Optional[Callable[[], int]] = None,
        max_id_attempts: int = MAX_ID_ATTEMPTS,
    ) -> None:
        self.store = store
        self.collection = collection
        self._id_factory = id_factory or default_id_factory
        self._max_id_attempts = max_id_attempts

    def list_all(self, *, principal: Principal) -> List[Film]:
        principal.require(Capability.READ)
        with self.store.locked(self.collection):
            return ranking.sort_by_position(self._load())

    def get_by_id(self, film_id: int, *, principal: Principal) -> Film:
        principal.require(Capability.READ)
        with self.store.locked(self.collection):
            return self._find(self._load(), film_id)

    def insert(
        self,
        candidate: Mapping[str, Any],
        desired_position: Optional[int] = None,
        *,
        principal: Principal,
    ) -> Film:
        principal.require(Capability.WRITE)
        payload = dict(candidate)
        if desired_position is not None:
            payload["position"] = desired_position
        cleaned = validate_candidate(payload)
        with self.store.locked(self.collection):
            films = ranking.sort_by_position(self._load())
            positions = [film.position for film in films]
            resolved = ranking.resolve_position(positions, cleaned["position"])
            ranking.shift_for_insert(films, resolved)
            film = Film(id=self._new_id(films), **{**cleaned, "position": resolved})
            films.append(film)
            self._save(films)
        logger.info(
            "Film %s '%s' inserted at %s (requested %s) by %s",
            film.id,
            film.title,
            film.position,
            cleaned["position"],
            principal.email,
        )
        return film

    def update(self, film_id: int, patch: Mapping[str, Any], *, principal: Principal) -> Film:
        principal.require(Capability.WRITE)
        cleaned = validate_patch(patch)
        with self.store.locked(self.collection):
            films = ranking.sort_by_position(self._load())
            film = self._find(films, film_id)
            for name in EDITABLE_FIELDS:
                if name in cleaned:
                    setattr(film, name, cleaned[name])
            desired = cleaned.get("position")
            if desired is not None and desired != film.position:
                positions = [item.position for item in films]
                resolved = ranking.resolve_position(positions, desired, upper=positions[-1])
                others = [item for item in films if item is not film]
                ranking.shift_for_move(others, film.position, resolved)
                film.position = resolved
            self._save(films)
        logger.info("Film %s updated by %s", film.id, principal.email)
        return film

    def delete(self, film_id: int, *, principal: Principal) -> str:
        principal.require(Capability.WRITE)
        with self.store.locked(self.collection):
            films = self._load()
            film = self._find(films, film_id)
            remaining = [item for item in films if item is not film]
            ranking.compact_after_delete(remaining, film.position)
            self._save(remaining)
        logger.info("Film %s deleted from position %s by %s", film_id, film.position, principal.email)
        return f"Film {film_id} deleted."

    def refresh_from_external_catalog(self, feed: CatalogFeed, *, principal: Principal) -> int:
        """Overwrite the collection with the feed's list as-is."""
        principal.require(Capability.READ)
        films = feed.fetch_top()
        with self.store.locked(self.collection):
            self._save(films)
        logger.info("Replaced %s with %d films from the catalog feed", self.collection, len(films))
        return len(films)

    def _load(self) -> List[Film]:
        records = self.store.load(self.collection)
        try:
            return [Film.from_record(record) for record in records]
        except (AttributeError, TypeError) as exc:
            logger.exception("Malformed record in collection %s", self.collection)
            raise StorageUnavailable(f"Collection '{self.collection}' holds a malformed record.") from exc

    def _save(self, films: List[Film]) -> None:
        ordered = ranking.sort_by_position(films)
        self.store.save(self.collection, [film.to_record() for film in ordered])

    @staticmethod
    def _find(films: List[Film], film_id: int) -> Film:
        for film in films:
            if film.id == film_id:
                return film
        raise NotFound(f"Film {film_id} not found.")

    def _new_id(self, films: List[Film]) -> int:
        taken = {film.id for film in films}
        for attempt in range(1, self._max_id_attempts + 1):
            try:
                return self._claim_id(taken)
            except IdentifierCollision:
                logger.warning("Identifier collision on attempt %d, retrying", attempt)
        raise IdentifierCollision(
            f"Could not generate a unique film id after {self._max_id_attempts} attempts."
        )

    def _claim_id(self, taken: set[int]) -> int:
        candidate = self._id_factory()
        if candidate in taken:
            raise IdentifierCollision(f"Film id {candidate} already exists.")
        return candidate
