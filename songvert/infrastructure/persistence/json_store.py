"""JSON persistence for tracks and playlists.

Documents use the entity field names. Enums are stored by value, absent
service slots as null. Loading rebuilds the frozen entities and reports any
structural problem as ParseError.
"""

import json
from pathlib import Path
from typing import Any

import attrs

from songvert.config import get_logger
from songvert.domain.entities import (
    MATCH_TYPES,
    Album,
    Artist,
    Playlist,
    Services,
    Source,
    Track,
)
from songvert.domain.exceptions import ParseError

logger = get_logger(__name__)


def _serialize_value(inst: Any, field: Any, value: Any) -> Any:
    if isinstance(value, Source):
        return value.value
    return value


def track_to_dict(track: Track) -> dict[str, Any]:
    return attrs.asdict(track, value_serializer=_serialize_value)


def playlist_to_dict(playlist: Playlist) -> dict[str, Any]:
    return attrs.asdict(playlist, value_serializer=_serialize_value)


def _artist_from_dict(data: dict[str, Any]) -> Artist:
    return Artist(id=data["id"], name=data["name"], url=data.get("url"))


def _album_from_dict(data: dict[str, Any] | None) -> Album | None:
    if data is None:
        return None
    return Album(
        id=data["id"],
        name=data["name"],
        url=data.get("url"),
        total_tracks=data.get("total_tracks"),
        ean=data.get("ean"),
        upc=data.get("upc"),
    )


def _services_from_dict(data: dict[str, Any] | None) -> Services:
    services = Services()
    for source in Source:
        raw = (data or {}).get(source.value)
        if raw is None:
            continue
        fields = dict(raw)
        fields["artists"] = [_artist_from_dict(a) for a in fields.get("artists", [])]
        fields["album"] = _album_from_dict(fields.get("album"))
        services = services.with_match(source, MATCH_TYPES[source](**fields))
    return services


def track_from_dict(data: dict[str, Any]) -> Track:
    """Rebuild a Track from its document.

    Raises:
        ParseError: a required key is missing or a value has the wrong shape
    """
    try:
        return Track(
            name=data["name"],
            album=data["album"],
            artists=list(data["artists"]),
            duration_ms=data["duration_ms"],
            release_year=data["release_year"],
            release_month=data.get("release_month"),
            release_day=data.get("release_day"),
            disk_number=data.get("disk_number", 1),
            track_number=data.get("track_number", 1),
            is_explicit=data.get("is_explicit", False),
            isrc=data.get("isrc"),
            source_service=data["source_service"],
            services=_services_from_dict(data.get("services")),
        )
    except KeyError as e:
        raise ParseError(f"Track document is missing {e.args[0]!r}") from e
    except (TypeError, ValueError, AttributeError) as e:
        raise ParseError(f"Malformed track document: {e}") from e


def playlist_from_dict(data: dict[str, Any]) -> Playlist:
    """Rebuild a Playlist, keeping track order.

    Raises:
        ParseError: a required key is missing or a value has the wrong shape
    """
    try:
        tracks = [track_from_dict(track) for track in data["tracks"]]
        return Playlist(
            name=data["name"],
            id=data["id"],
            source_service=data["source_service"],
            tracks=tracks,
            description=data.get("description"),
            kind=data.get("kind", "playlist"),
        )
    except KeyError as e:
        raise ParseError(f"Playlist document is missing {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise ParseError(f"Malformed playlist document: {e}") from e


def save_json(entity: Track | Playlist, path: Path) -> Path:
    """Write a track or playlist document to ``path``."""
    document = (
        playlist_to_dict(entity) if isinstance(entity, Playlist) else track_to_dict(entity)
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved JSON document", path=str(path), kind=type(entity).__name__)
    return path


def _read_document(path: Path) -> dict[str, Any]:
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ParseError(f"{path.name} is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ParseError(f"{path.name} does not contain a JSON object")
    return document


def load_playlist(path: Path) -> Playlist:
    return playlist_from_dict(_read_document(path))


def load_track(path: Path) -> Track:
    return track_from_dict(_read_document(path))
