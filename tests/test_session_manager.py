"""Tests for interactive segmentation sessions."""

from __future__ import annotations

import pytest

from tinysam.core.contracts import Click, ClickType
from tinysam.core.errors import NotFoundError


def test_click_history(segmenter, image) -> None:
    session = segmenter.create_session(image)

    session.add_click(10, 20).add_click(30, 40, "exclude").add_click(5, 5, ClickType.INCLUDE)
    session.remove_last_click()

    assert session.get_clicks() == [Click(10, 20), Click(30, 40, ClickType.EXCLUDE)]
    assert session.get_click_count() == 2
    assert session.image_identity == image.identity


def test_get_clicks_returns_a_copy(segmenter, image) -> None:
    session = segmenter.create_session(image).add_click(1, 1)

    session.get_clicks().clear()

    assert session.get_click_count() == 1


def test_remove_last_click_on_empty_history_is_a_no_op(segmenter, image) -> None:
    session = segmenter.create_session(image)

    session.remove_last_click()

    assert session.get_clicks() == []
    assert session.get_last_mask() is None


def test_invalid_click_type(segmenter, image) -> None:
    session = segmenter.create_session(image)

    with pytest.raises(ValueError):
        session.add_click(1, 1, "middle")


@pytest.mark.asyncio
async def test_segment_stores_last_mask(segmenter, loader, image) -> None:
    await segmenter.initialize()
    session = segmenter.create_session(image)

    mask = await session.add_click(0, 0, "include").segment(image)

    assert mask.alpha.reshape(-1).tolist() == [255, 0, 0, 255]
    assert session.get_last_mask() is mask
    assert loader.decoder.calls[0]["point_labels"][0].tolist() == [1, -1]


@pytest.mark.asyncio
async def test_segment_without_clicks_clears_last_mask(segmenter, loader, image) -> None:
    await segmenter.initialize()
    session = segmenter.create_session(image)
    await session.add_click(1, 1).segment(image)

    session.remove_last_click()
    result = await session.segment(image)

    assert result is None
    assert session.get_last_mask() is None
    assert loader.decoder.call_count == 1


@pytest.mark.asyncio
async def test_reset_keeps_session_active(segmenter, image) -> None:
    await segmenter.initialize()
    session = segmenter.create_session(image).add_click(1, 1)
    await session.segment(image)

    session.reset()

    assert session.get_click_count() == 0
    assert session.get_last_mask() is None
    session.add_click(2, 2)
    assert session.get_click_count() == 1


@pytest.mark.asyncio
async def test_disposed_session_raises_not_found(segmenter, image) -> None:
    session = segmenter.create_session(image)
    session.dispose()

    for operation in (
        lambda: session.add_click(1, 1),
        session.remove_last_click,
        session.reset,
        session.get_clicks,
        session.get_click_count,
        session.get_last_mask,
    ):
        with pytest.raises(NotFoundError):
            operation()

    with pytest.raises(NotFoundError):
        await session.segment(image)


def test_dispose_twice_does_not_break_the_store(segmenter, image) -> None:
    session = segmenter.create_session(image)
    other = segmenter.create_session(image)

    session.dispose()
    session.dispose()

    assert len(segmenter.sessions) == 1
    assert other.get_click_count() == 0


def test_session_ids_are_unique(segmenter, image) -> None:
    ids = {segmenter.sessions.create(image) for _ in range(500)}

    assert len(ids) == 500
    assert all(session_id.startswith("session_") for session_id in ids)


def test_clear_all_sessions(segmenter, image) -> None:
    first = segmenter.create_session(image)
    second = segmenter.create_session(image)

    segmenter.clear_all_sessions()

    assert len(segmenter.sessions) == 0
    for session in (first, second):
        with pytest.raises(NotFoundError):
            session.get_clicks()


def test_not_found_is_a_key_error(segmenter) -> None:
    with pytest.raises(KeyError) as excinfo:
        segmenter.sessions.get_clicks("session_0_unknown")

    assert "session_0_unknown" in str(excinfo.value)
