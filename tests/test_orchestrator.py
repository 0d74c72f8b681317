"""Tests for the click-to-mask pipeline."""

from __future__ import annotations

import asyncio

import numpy as np
import pytest

from tinysam.core.contracts import Click, ClickType, SourceImage
from tinysam.core.errors import PlatformError, PreconditionError


@pytest.mark.asyncio
async def test_segment_before_initialize_fails(segmenter, image) -> None:
    with pytest.raises(PreconditionError):
        await segmenter.segment(image, [Click(1, 1)])

    with pytest.raises(PreconditionError):
        await segmenter.precompute_embedding(image)


@pytest.mark.asyncio
async def test_empty_clicks_return_none_without_inference(segmenter, loader, image) -> None:
    await segmenter.initialize()

    assert await segmenter.segment(image, []) is None
    assert loader.encoder.call_count == 0
    assert loader.decoder.call_count == 0


@pytest.mark.asyncio
async def test_end_to_end_mask(segmenter, loader, image) -> None:
    await segmenter.initialize()

    mask = await segmenter.segment(image, [Click(0, 0)])

    assert mask.alpha.reshape(-1).tolist() == [255, 0, 0, 255]
    assert not mask.data[..., :3].any()
    encoder_feeds = loader.encoder.calls[0]
    assert list(encoder_feeds) == ["input"]
    assert encoder_feeds["input"].shape == (1, 3, 64, 64)


@pytest.mark.asyncio
async def test_decoder_receives_cached_embedding_and_scaled_clicks(segmenter, loader, image) -> None:
    await segmenter.initialize()

    await segmenter.segment(image, [Click(16, 24), Click(4, 8, ClickType.EXCLUDE)])

    feeds = loader.decoder.calls[0]
    # 32x48 image, longer edge 48 -> 64
    scale = 64 / 48
    np.testing.assert_allclose(
        feeds["point_coords"][0], [[16 * scale, 24 * scale], [4 * scale, 8 * scale], [0, 0]],
        rtol=1e-6,
    )
    np.testing.assert_array_equal(feeds["point_labels"][0], [1, 0, -1])
    np.testing.assert_array_equal(feeds["orig_im_size"], [48, 32])
    assert feeds["mask_input"].shape == (1, 1, 16, 16)
    assert feeds["image_embeddings"] is loader.encoder.outputs["image_embeddings"]


@pytest.mark.asyncio
async def test_precompute_then_segment_reuses_embedding(segmenter, loader, image) -> None:
    await segmenter.initialize()

    identity = await segmenter.precompute_embedding(image)
    await segmenter.segment(image, [Click(1, 1)])
    await segmenter.segment(image, [Click(2, 2)])

    assert identity == "test://image-1"
    assert loader.encoder.call_count == 1
    assert loader.decoder.call_count == 2


@pytest.mark.asyncio
async def test_clear_cache_triggers_new_encoder_run(segmenter, loader, image) -> None:
    await segmenter.initialize()
    await segmenter.precompute_embedding(image)

    segmenter.clear_embedding_cache()
    await segmenter.segment(image, [Click(1, 1)])

    assert loader.encoder.call_count == 2


@pytest.mark.asyncio
async def test_concurrent_first_requests_encode_once(segmenter, loader, image) -> None:
    await segmenter.initialize()

    await asyncio.gather(
        segmenter.precompute_embedding(image),
        segmenter.segment(image, [Click(1, 1)]),
        segmenter.segment(image, [Click(2, 2)]),
    )

    assert loader.encoder.call_count == 1
    assert loader.decoder.call_count == 2


@pytest.mark.asyncio
async def test_clicks_scale_with_cached_dimensions(segmenter, loader) -> None:
    await segmenter.initialize()
    first = SourceImage.from_array(np.zeros((48, 32, 3), dtype=np.uint8), identity="shared")
    resized = SourceImage.from_array(np.zeros((96, 64, 3), dtype=np.uint8), identity="shared")

    await segmenter.precompute_embedding(first)
    await segmenter.segment(resized, [Click(12, 12)])

    feeds = loader.decoder.calls[0]
    np.testing.assert_allclose(feeds["point_coords"][0, 0], [16, 16], rtol=1e-6)
    np.testing.assert_array_equal(feeds["orig_im_size"], [48, 32])


@pytest.mark.asyncio
async def test_unreadable_image_fails_before_encoding(segmenter, loader, tmp_path) -> None:
    await segmenter.initialize()
    missing = SourceImage.from_file(tmp_path / "gone.png")

    with pytest.raises(PlatformError):
        await segmenter.precompute_embedding(missing)

    assert loader.encoder.call_count == 0


@pytest.mark.asyncio
async def test_bare_arrays_are_accepted(segmenter, loader) -> None:
    await segmenter.initialize()

    mask = await segmenter.segment(np.zeros((8, 8, 3), dtype=np.uint8), [Click(1, 1)])

    assert mask is not None
    with pytest.raises(TypeError):
        await segmenter.segment("not an image", [Click(1, 1)])


@pytest.mark.asyncio
async def test_independent_segmenters_do_not_share_state(make_segmenter, image) -> None:
    first, first_loader = make_segmenter()
    second, second_loader = make_segmenter()
    await first.initialize()
    await second.initialize()

    await first.precompute_embedding(image)
    await second.segment(image, [Click(1, 1)])

    assert first_loader.encoder.call_count == 1
    assert second_loader.encoder.call_count == 1
    assert first.cache is not second.cache


@pytest.mark.asyncio
async def test_one_pixel_wide_image_segments(segmenter, loader) -> None:
    thin = SourceImage.from_array(np.full((200, 1, 3), 90, dtype=np.uint8), identity="thin")
    await segmenter.initialize()

    mask = await segmenter.segment(thin, [Click(0, 5)])

    assert mask is not None
    assert loader.encoder.call_count == 1
    feeds = loader.decoder.calls[0]
    np.testing.assert_array_equal(feeds["orig_im_size"], [200, 1])
