"""Tests for download source selection, artwork, tagging and the pipeline."""

import errno
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import httpx
from mutagen.id3 import ID3
import pytest

from songvert.domain.entities import (
    AppleMusicMatch,
    BandcampMatch,
    Source,
    SpotifyMatch,
    YouTubeMatch,
)
from songvert.domain.exceptions import DownloadError, TagError
from songvert.infrastructure.download import (
    Artwork,
    TrackDownloadPipeline,
    download_direct,
    download_external,
    download_sources,
    fetch_artwork,
    has_artwork,
    select_artwork_url,
    tag_file,
)
from songvert.infrastructure.download import downloader as downloader_module

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
MP3_FRAME = b"\xff\xfb\x90\x64" + b"\x00" * 413

STREAM_URL = "https://t4.bcbits.com/stream/abc/mp3-128/2213843395"
SPOTIFY_IMAGE = "https://i.scdn.co/image/cover640"


def bandcamp_match(streaming_url: str | None = STREAM_URL) -> BandcampMatch:
    return BandcampMatch(
        id="2213843395",
        name="Duchess for Nothing",
        url="https://tunabunny.bandcamp.com/track/duchess-for-nothing",
        image="https://f4.bcbits.com/img/a2873938497_0.jpg",
        streaming_url=streaming_url,
    )


def youtube_match() -> YouTubeMatch:
    return YouTubeMatch(
        id="abc123",
        name="Duchess for Nothing",
        url="https://music.youtube.com/watch?v=abc123",
        image="https://lh3.googleusercontent.com/large",
    )


class TestDownloadSources:
    def test_bandcamp_stream_comes_before_youtube(self, reference_track):
        track = reference_track.with_match(Source.BANDCAMP, bandcamp_match()).with_match(
            Source.YOUTUBE, youtube_match()
        )

        sources = download_sources(track, audio_format="m4a")

        assert [(s.kind, s.source, s.extension) for s in sources] == [
            ("direct", Source.BANDCAMP, "mp3"),
            ("external", Source.YOUTUBE, "m4a"),
        ]

    def test_youtube_when_bandcamp_has_no_stream(self, reference_track):
        track = reference_track.with_match(
            Source.BANDCAMP, bandcamp_match(streaming_url=None)
        ).with_match(Source.YOUTUBE, youtube_match())

        (source,) = download_sources(track, audio_format="opus")

        assert source.kind == "external"
        assert source.url == "https://music.youtube.com/watch?v=abc123"
        assert source.extension == "opus"

    def test_no_downloadable_service(self, reference_track):
        assert download_sources(reference_track) == []


class TestArtwork:
    def test_apple_music_preferred_as_jpeg(self, reference_track):
        apple = AppleMusicMatch(
            id="1",
            name="x",
            url="https://music.apple.com/us/song/1",
            image="https://is1-ssl.mzstatic.com/image/thumb/a/352x352bb.webp",
        )
        track = reference_track.with_match(Source.BANDCAMP, bandcamp_match()).with_match(
            Source.APPLE_MUSIC, apple
        )

        assert select_artwork_url(track) == (
            Source.APPLE_MUSIC,
            "https://is1-ssl.mzstatic.com/image/thumb/a/352x352bb.jpg",
        )

    def test_falls_back_through_services(self, reference_track):
        track = reference_track.with_match(Source.YOUTUBE, youtube_match())
        assert select_artwork_url(track)[0] is Source.YOUTUBE

    async def test_fetch_failure_returns_none(self, mock_http, reference_track):
        client, _ = mock_http({})
        track = reference_track.with_match(Source.BANDCAMP, bandcamp_match())

        assert await fetch_artwork(client, track) is None

    async def test_fetch_reads_mime(self, mock_http, reference_track):
        png = httpx.Response(200, content=PNG, headers={"content-type": "image/png"})
        client, _ = mock_http({"/img/a2873938497_0.jpg": png})
        track = reference_track.with_match(Source.BANDCAMP, bandcamp_match())

        artwork = await fetch_artwork(client, track)

        assert artwork.mime == "image/png"
        assert artwork.is_png


class TestTagging:
    def test_mp3_tags_are_written(self, tmp_path, reference_track):
        path = tmp_path / "song.mp3"
        path.write_bytes(MP3_FRAME)

        written = tag_file(path, reference_track, Artwork(data=JPEG, mime="image/jpeg"))

        tags = ID3(path)
        assert written
        assert tags["TIT2"].text == ["Duchess for Nothing"]
        assert tags["TALB"].text == ["Genius Fatigue"]
        assert tags["TPE1"].text == ["Tunabunny"]
        assert str(tags["TDRC"].text[0]) == "2013"
        assert tags.getall("APIC")[0].mime == "image/jpeg"

    def test_only_primary_artist_is_tagged(self, tmp_path, track_factory):
        path = tmp_path / "song.mp3"
        path.write_bytes(MP3_FRAME)

        tag_file(path, track_factory(artists=["Tunabunny", "Guest Singer"]))

        assert ID3(path)["TPE1"].text == ["Tunabunny"]

    def test_existing_artwork_is_kept_without_overwrite(
        self, tmp_path, reference_track, track_factory
    ):
        path = tmp_path / "song.mp3"
        path.write_bytes(MP3_FRAME)
        tag_file(path, reference_track, Artwork(data=JPEG, mime="image/jpeg"))

        written = tag_file(
            path, track_factory(name="Renamed"), Artwork(data=PNG, mime="image/png")
        )

        tags = ID3(path)
        assert not written
        assert tags["TIT2"].text == ["Duchess for Nothing"]
        assert tags.getall("APIC")[0].data == JPEG

    def test_overwrite_replaces_artwork(self, tmp_path, reference_track):
        path = tmp_path / "song.mp3"
        path.write_bytes(MP3_FRAME)
        tag_file(path, reference_track, Artwork(data=JPEG, mime="image/jpeg"))

        tag_file(
            path,
            reference_track,
            Artwork(data=PNG, mime="image/png"),
            overwrite_artwork=True,
        )

        apics = ID3(path).getall("APIC")
        assert len(apics) == 1
        assert apics[0].mime == "image/png"
        assert has_artwork(path)

    def test_without_artwork(self, tmp_path, reference_track):
        path = tmp_path / "song.mp3"
        path.write_bytes(MP3_FRAME)

        tag_file(path, reference_track, None)

        assert not has_artwork(path)

    def test_unsupported_format(self, tmp_path, reference_track):
        path = tmp_path / "song.flac"
        path.write_bytes(b"fLaC")

        with pytest.raises(TagError):
            tag_file(path, reference_track)

    def test_unreadable_m4a_is_tag_error(self, tmp_path, reference_track):
        path = tmp_path / "song.m4a"
        path.write_bytes(b"not an mp4 container")

        with pytest.raises(TagError):
            tag_file(path, reference_track)


class FullDiskFile:
    """Writable file whose second write fails as if the disk filled up."""

    def __init__(self, handle):
        self.handle = handle
        self.writes = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.handle.close()

    def write(self, data):
        self.writes += 1
        if self.writes > 1:
            raise OSError(errno.ENOSPC, "No space left on device")
        return self.handle.write(data)


class TestDirectDownloader:
    async def test_write_failure_removes_partial_file(
        self, monkeypatch, mock_http, tmp_path
    ):
        async def chunks():
            yield MP3_FRAME
            yield MP3_FRAME

        client, _ = mock_http({"/stream": httpx.Response(200, content=chunks())})
        real_open = Path.open
        monkeypatch.setattr(
            Path,
            "open",
            lambda self, *args, **kwargs: FullDiskFile(real_open(self, *args, **kwargs)),
        )
        destination = tmp_path / "song.mp3"

        with pytest.raises(DownloadError) as exc_info:
            await download_direct(client, "https://t4.bcbits.com/stream", destination)

        assert "No space left" in str(exc_info.value)
        assert not destination.exists()

    async def test_http_error_status_leaves_no_file(self, mock_http, tmp_path):
        client, _ = mock_http({"/stream": httpx.Response(500)})
        destination = tmp_path / "song.mp3"

        with pytest.raises(DownloadError) as exc_info:
            await download_direct(client, "https://t4.bcbits.com/stream", destination)

        assert exc_info.value.details["status_code"] == 500
        assert not destination.exists()


class TestExternalDownloader:
    async def test_invokes_downloader_with_format_and_output(self, monkeypatch, tmp_path):
        process = Mock(returncode=0)
        process.communicate = AsyncMock(return_value=(b"", b""))
        spawn = AsyncMock(return_value=process)
        monkeypatch.setattr(downloader_module.asyncio, "create_subprocess_exec", spawn)

        path = await download_external(
            "https://music.youtube.com/watch?v=abc123",
            tmp_path / "(1) Song",
            audio_format="m4a",
            command="yt-dlp",
        )

        args = spawn.await_args.args
        assert args[:4] == ("yt-dlp", "-x", "--audio-format", "m4a")
        assert args[4:6] == ("-o", f"{tmp_path / '(1) Song'}.%(ext)s")
        assert args[6] == "https://music.youtube.com/watch?v=abc123"
        assert path == tmp_path / "(1) Song.m4a"

    async def test_non_zero_exit_is_download_error(self, monkeypatch, tmp_path):
        process = Mock(returncode=1)
        process.communicate = AsyncMock(return_value=(b"", b"ERROR: Video unavailable"))
        monkeypatch.setattr(
            downloader_module.asyncio,
            "create_subprocess_exec",
            AsyncMock(return_value=process),
        )

        with pytest.raises(DownloadError) as exc_info:
            await download_external("https://x", tmp_path / "song")
        assert "Video unavailable" in exc_info.value.details["stderr"]

    async def test_missing_command_is_download_error(self, monkeypatch, tmp_path):
        monkeypatch.setattr(
            downloader_module.asyncio,
            "create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("yt-dlp")),
        )

        with pytest.raises(DownloadError):
            await download_external("https://x", tmp_path / "song", command="yt-dlp")


class TestPipeline:
    async def test_direct_download_is_tagged(self, mock_http, tmp_path, reference_track):
        client, handler = mock_http(
            {
                "/stream/abc/mp3-128/2213843395": httpx.Response(200, content=MP3_FRAME),
                "/image/cover640": httpx.Response(
                    200, content=JPEG, headers={"content-type": "image/jpeg"}
                ),
            }
        )
        spotify = SpotifyMatch(
            id="4uLU", name="Duchess for Nothing", url="https://x", image=SPOTIFY_IMAGE
        )
        track = reference_track.with_match(Source.BANDCAMP, bandcamp_match()).with_match(
            Source.SPOTIFY, spotify
        )
        pipeline = TrackDownloadPipeline(client, overwrite_artwork=False)

        path = await pipeline.download(track, tmp_path, "(1) Duchess for Nothing - Tunabunny")

        assert path == tmp_path / "(1) Duchess for Nothing - Tunabunny.mp3"
        tags = ID3(path)
        assert tags["TIT2"].text == ["Duchess for Nothing"]
        assert tags.getall("APIC")[0].data == JPEG

    async def test_failed_stream_falls_back_to_youtube(
        self, monkeypatch, mock_http, tmp_path, reference_track
    ):
        client, _ = mock_http({"/stream/abc/mp3-128/2213843395": httpx.Response(500)})
        external = AsyncMock(return_value=tmp_path / "song.m4a")
        tagger = Mock(return_value=True)
        monkeypatch.setattr(downloader_module, "download_external", external)
        monkeypatch.setattr(downloader_module, "tag_file", tagger)
        track = reference_track.with_match(Source.BANDCAMP, bandcamp_match()).with_match(
            Source.YOUTUBE, youtube_match()
        )

        path = await TrackDownloadPipeline(client, audio_format="m4a").download(
            track, tmp_path, "song"
        )

        assert path == tmp_path / "song.m4a"
        assert external.await_args.args[0] == "https://music.youtube.com/watch?v=abc123"
        assert tagger.call_args.args[0] == tmp_path / "song.m4a"
        assert not (tmp_path / "song.mp3").exists()

    async def test_every_source_failing_is_download_error(
        self, monkeypatch, mock_http, tmp_path, reference_track
    ):
        client, _ = mock_http({"/stream/abc/mp3-128/2213843395": httpx.Response(403)})
        monkeypatch.setattr(
            downloader_module,
            "download_external",
            AsyncMock(side_effect=DownloadError("yt-dlp exited with status 1")),
        )
        track = reference_track.with_match(Source.BANDCAMP, bandcamp_match()).with_match(
            Source.YOUTUBE, youtube_match()
        )

        with pytest.raises(DownloadError) as exc_info:
            await TrackDownloadPipeline(client).download(track, tmp_path, "song")
        assert exc_info.value.details["sources"] == ["bandcamp", "youtube"]
        assert len(exc_info.value.details["errors"]) == 2

    async def test_track_without_source_returns_none(self, mock_http, tmp_path, reference_track):
        client, handler = mock_http({})

        pipeline = TrackDownloadPipeline(client)

        assert await pipeline.download(reference_track, tmp_path, "x") is None
        assert handler.requests == []
