"""
Data models for discover listings.

These dataclasses are the canonical shape of the backend's discover
payloads. The UI consumes them, never the raw JSON.
"""
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any

from discover_console.utils.helpers import (
    safe_str,
    safe_optional_str,
    safe_int,
    safe_float,
    require_int,
)


@dataclass
class PopularityType:
    """An entry of the popularity taxonomy (e.g. "IGDB Visits")."""
    id: int
    name: str
    popularity_source: int

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "PopularityType":
        return cls(
            id=require_int(raw, "id"),
            name=safe_str(raw.get("name")),
            popularity_source=safe_int(raw.get("popularity_source")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GameSummary:
    """Game metadata attached to a popularity ranking."""
    igdb_id: int
    title: str
    year: Optional[int] = None
    cover_url: Optional[str] = None
    summary: Optional[str] = None
    platforms: List[str] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    total_rating: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "GameSummary":
        year = raw.get("year")
        rating = raw.get("totalRating")
        return cls(
            igdb_id=require_int(raw, "igdbId"),
            title=safe_str(raw.get("title")),
            year=safe_int(year) if year is not None else None,
            cover_url=safe_optional_str(raw.get("coverUrl")),
            summary=safe_optional_str(raw.get("summary")),
            platforms=[safe_str(p) for p in raw.get("platforms") or []],
            genres=[safe_str(g) for g in raw.get("genres") or []],
            total_rating=safe_float(rating) if rating is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "igdbId": self.igdb_id,
            "title": self.title,
            "year": self.year,
            "coverUrl": self.cover_url,
            "summary": self.summary,
            "platforms": self.platforms,
            "genres": self.genres,
            "totalRating": self.total_rating,
        }


@dataclass
class PopularGame:
    """A game ranked by one popularity type."""
    game: GameSummary
    popularity_value: float
    popularity_type: int
    rank: int
    in_library: bool = False

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "PopularGame":
        game = raw.get("game")
        if not isinstance(game, dict):
            raise ValueError("popular game entry has no 'game' object")
        return cls(
            game=GameSummary.from_raw(game),
            popularity_value=safe_float(raw.get("popularityValue")),
            popularity_type=safe_int(raw.get("popularityType")),
            rank=safe_int(raw.get("rank")),
            in_library=bool(raw.get("inLibrary", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game": self.game.to_dict(),
            "popularityValue": self.popularity_value,
            "popularityType": self.popularity_type,
            "rank": self.rank,
            "inLibrary": self.in_library,
        }


@dataclass
class TorrentRelease:
    """A release returned by the indexers, ranked by seeders."""
    title: str
    indexer: str
    size: int
    seeders: int
    leechers: int
    published_at: str  # ISO timestamp
    download_url: Optional[str] = None
    info_url: Optional[str] = None
    quality: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "TorrentRelease":
        if not raw.get("title"):
            raise ValueError("torrent release has no title")
        return cls(
            title=safe_str(raw.get("title")),
            indexer=safe_str(raw.get("indexer")),
            size=safe_int(raw.get("size")),
            seeders=safe_int(raw.get("seeders")),
            leechers=safe_int(raw.get("leechers")),
            published_at=safe_str(raw.get("publishedAt")),
            download_url=safe_optional_str(raw.get("downloadUrl")),
            info_url=safe_optional_str(raw.get("infoUrl")),
            quality=safe_optional_str(raw.get("quality")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "indexer": self.indexer,
            "size": self.size,
            "seeders": self.seeders,
            "leechers": self.leechers,
            "publishedAt": self.published_at,
            "downloadUrl": self.download_url,
            "infoUrl": self.info_url,
            "quality": self.quality,
        }
