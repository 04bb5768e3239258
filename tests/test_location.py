from __future__ import annotations

import json
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from bydhass.exceptions import LocationUnavailableError
from bydhass.models.snapshot import Snapshot
from bydhass.sources.location import FileLocationProvider

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _write(path: Path, payload: dict[str, object], *, mtime: datetime) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")
    stamp = mtime.timestamp()
    os.utime(path, (stamp, stamp))


@pytest.mark.asyncio
async def test_reads_fix_with_explicit_timestamp(tmp_path: Path) -> None:
    gps = tmp_path / "gps"
    fix_time = _NOW - timedelta(seconds=30)
    payload = {"latitude": 59.9, "longitude": 10.7, "accuracy": 5, "bearing": 90, "timestamp": int(fix_time.timestamp())}
    _write(gps, payload, mtime=_NOW)
    provider = FileLocationProvider(str(gps), now=lambda: _NOW)

    await provider.refresh()
    location = provider.get_location()

    assert (location.latitude, location.longitude, location.bearing) == (59.9, 10.7, 90.0)
    assert location.timestamp == fix_time
    assert location.provider == "file"


@pytest.mark.asyncio
async def test_falls_back_to_file_mtime(tmp_path: Path) -> None:
    gps = tmp_path / "gps"
    mtime = _NOW - timedelta(seconds=10)
    _write(gps, {"latitude": 1.0, "longitude": 2.0}, mtime=mtime)
    provider = FileLocationProvider(str(gps), now=lambda: _NOW)

    location = await provider.refresh()

    assert location is not None
    assert location.timestamp == mtime


@pytest.mark.asyncio
async def test_cache_only_moves_forward_with_mtime(tmp_path: Path) -> None:
    gps = tmp_path / "gps"
    _write(gps, {"latitude": 1.0, "longitude": 2.0}, mtime=_NOW)
    provider = FileLocationProvider(str(gps), now=lambda: _NOW)
    await provider.refresh()

    _write(gps, {"latitude": 3.0, "longitude": 4.0}, mtime=_NOW)
    await provider.refresh()
    assert provider.get_location().latitude == 1.0

    _write(gps, {"latitude": 3.0, "longitude": 4.0}, mtime=_NOW + timedelta(seconds=1))
    await provider.refresh()
    assert provider.get_location().latitude == 3.0


@pytest.mark.asyncio
async def test_stale_fix_is_rejected(tmp_path: Path) -> None:
    gps = tmp_path / "gps"
    _write(gps, {"latitude": 1.0, "longitude": 2.0}, mtime=_NOW - timedelta(minutes=5))
    provider = FileLocationProvider(str(gps), cache_ttl=120.0, now=lambda: _NOW)
    await provider.refresh()

    with pytest.raises(LocationUnavailableError, match="stale"):
        provider.get_location()


@pytest.mark.asyncio
async def test_missing_or_invalid_file(tmp_path: Path) -> None:
    provider = FileLocationProvider(str(tmp_path / "missing"), now=lambda: _NOW)
    with pytest.raises(LocationUnavailableError):
        await provider.refresh()
    with pytest.raises(LocationUnavailableError):
        provider.get_location()

    broken = tmp_path / "broken"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(LocationUnavailableError):
        await FileLocationProvider(str(broken)).refresh()


@pytest.mark.asyncio
async def test_enrich_attaches_location(tmp_path: Path) -> None:
    gps = tmp_path / "gps"
    _write(gps, {"latitude": 1.0, "longitude": 2.0}, mtime=_NOW)
    provider = FileLocationProvider(str(gps), now=lambda: _NOW)
    snapshot = Snapshot(values={"speed": 0.0})

    enriched = await provider.enrich(snapshot)

    assert enriched.location is not None
    assert enriched.location.latitude == 1.0
    assert enriched.values == snapshot.values
    assert snapshot.location is None


@pytest.mark.asyncio
async def test_enrich_keeps_fresh_cache_when_file_disappears(tmp_path: Path) -> None:
    gps = tmp_path / "gps"
    _write(gps, {"latitude": 1.0, "longitude": 2.0}, mtime=_NOW)
    provider = FileLocationProvider(str(gps), now=lambda: _NOW)
    await provider.refresh()
    gps.unlink()

    enriched = await provider.enrich(Snapshot(values={}))

    assert enriched.location is not None
    assert enriched.location.latitude == 1.0
