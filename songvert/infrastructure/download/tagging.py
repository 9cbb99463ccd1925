"""Metadata tagging for downloaded audio files.

MP3 files get ID3v2 frames, M4A files get iTunes-style MP4 atoms. Title,
album, primary artist, release year and cover art are written from the
canonical track. A file that already carries artwork is left as it is, tags
re-saved but not rewritten, unless overwriting is requested.
"""

from pathlib import Path

from mutagen import MutagenError
from mutagen.id3 import APIC, ID3, TALB, TDRC, TIT2, TPE1, ID3NoHeaderError
from mutagen.mp4 import MP4, MP4Cover

from songvert.config import get_logger
from songvert.domain.entities import Track
from songvert.domain.exceptions import TagError
from songvert.infrastructure.download.artwork import Artwork

logger = get_logger(__name__)

MP3_EXTENSIONS = {".mp3"}
MP4_EXTENSIONS = {".m4a", ".mp4"}


def _load_id3(path: Path) -> ID3:
    try:
        return ID3(path)
    except ID3NoHeaderError:
        return ID3()


def has_artwork(path: Path) -> bool:
    """Whether ``path`` already carries embedded cover art."""
    suffix = path.suffix.lower()
    try:
        if suffix in MP3_EXTENSIONS:
            return bool(_load_id3(path).getall("APIC"))
        if suffix in MP4_EXTENSIONS:
            tags = MP4(path).tags
            return bool(tags and tags.get("covr"))
    except MutagenError as e:
        raise TagError(f"Cannot read tags from {path.name}: {e}") from e
    return False


def _tag_mp3(path: Path, track: Track, artwork: Artwork | None) -> None:
    tags = _load_id3(path)
    tags.delall("APIC")
    tags.add(TIT2(encoding=3, text=track.name))
    tags.add(TALB(encoding=3, text=track.album))
    if track.primary_artist:
        tags.add(TPE1(encoding=3, text=[track.primary_artist]))
    if track.release_year:
        tags.add(TDRC(encoding=3, text=str(track.release_year)))
    if artwork is not None:
        tags.add(
            APIC(
                encoding=3,
                mime="image/png" if artwork.is_png else "image/jpeg",
                type=3,  # front cover
                desc="Cover",
                data=artwork.data,
            )
        )
    tags.save(path)


def _tag_m4a(path: Path, track: Track, artwork: Artwork | None) -> None:
    audio = MP4(path)
    if audio.tags is None:
        audio.add_tags()
    audio["\xa9nam"] = [track.name]
    audio["\xa9alb"] = [track.album]
    if track.primary_artist:
        audio["\xa9ART"] = [track.primary_artist]
    if track.release_year:
        audio["\xa9day"] = [str(track.release_year)]
    if artwork is not None:
        image_format = MP4Cover.FORMAT_PNG if artwork.is_png else MP4Cover.FORMAT_JPEG
        audio["covr"] = [MP4Cover(artwork.data, imageformat=image_format)]
    audio.save()


def resave_tags(path: Path) -> None:
    """Write the existing tags back unchanged."""
    suffix = path.suffix.lower()
    try:
        if suffix in MP3_EXTENSIONS:
            _load_id3(path).save(path)
        elif suffix in MP4_EXTENSIONS:
            MP4(path).save()
        else:
            raise TagError(f"Unsupported audio format: {path.suffix}")
    except MutagenError as e:
        raise TagError(f"Cannot save tags to {path.name}: {e}") from e


def tag_file(
    path: Path,
    track: Track,
    artwork: Artwork | None = None,
    overwrite_artwork: bool = False,
) -> bool:
    """Write ``track``'s metadata into ``path``.

    Returns False when existing artwork was kept and the tags were only
    re-saved, True when the tags were written.

    Raises:
        TagError: the format is unsupported or mutagen cannot read or write it
    """
    suffix = path.suffix.lower()
    if suffix not in MP3_EXTENSIONS | MP4_EXTENSIONS:
        raise TagError(
            f"Unsupported audio format: {path.suffix}", details={"path": str(path)}
        )

    if not overwrite_artwork and has_artwork(path):
        logger.debug("Keeping existing artwork", file=path.name)
        resave_tags(path)
        return False

    try:
        if suffix in MP3_EXTENSIONS:
            _tag_mp3(path, track, artwork)
        else:
            _tag_m4a(path, track, artwork)
    except MutagenError as e:
        raise TagError(
            f"Cannot write tags to {path.name}: {e}", details={"path": str(path)}
        ) from e

    logger.debug(
        "Tagged file",
        file=path.name,
        has_artwork=artwork is not None,
    )
    return True
