import numpy as np
import pytest

from seglive.perception.segmentation.errors import InferenceError
from seglive.perception.segmentation.postprocess import (
    VOC_PALETTE,
    blend,
    class_histogram,
    colorize,
    logits_to_mask,
    mirror,
    resize_mask,
)
from seglive.perception.segmentation.preprocess import to_model_input


def test_logits_to_mask_takes_argmax():
    logits = np.zeros((1, 3, 2, 2), dtype=np.float32)
    logits[0, 2, 0, 0] = 1.0
    logits[0, 1, 1, 1] = 1.0
    mask = logits_to_mask(logits)
    assert mask.dtype == np.uint8
    assert mask.tolist() == [[2, 0], [0, 1]]


def test_logits_to_mask_rejects_batches_and_bad_rank():
    with pytest.raises(InferenceError):
        logits_to_mask(np.zeros((2, 3, 4, 4), dtype=np.float32))
    with pytest.raises(InferenceError):
        logits_to_mask(np.zeros((4, 4), dtype=np.float32))


def test_to_model_input_shape_and_normalization():
    rgb = np.full((10, 20, 3), 255, dtype=np.uint8)
    x = to_model_input(rgb, edge_size=33, normalization="symmetric")
    assert x.shape == (1, 3, 33, 33)
    assert x.dtype == np.float32
    assert np.allclose(x, 1.0)
    with pytest.raises(ValueError):
        to_model_input(rgb, normalization="zscore")


def test_resize_mask_keeps_class_ids():
    mask = np.array([[0, 15], [7, 0]], dtype=np.uint8)
    big = resize_mask(mask, (4, 4))
    assert big.shape == (4, 4)
    assert set(np.unique(big)) == {0, 7, 15}


def test_colorize_background_is_transparent():
    mask = np.array([[0, 15]], dtype=np.uint8)
    rgba = colorize(mask, alpha=1.0)
    assert rgba.shape == (1, 2, 4)
    assert rgba[0, 0, 3] == 0
    assert rgba[0, 1, 3] == 255
    assert rgba[0, 1, :3].tolist() == VOC_PALETTE[15].tolist()


def test_mirror_flips_horizontally():
    img = np.arange(6, dtype=np.uint8).reshape(2, 3)
    assert mirror(img).tolist() == [[2, 1, 0], [5, 4, 3]]


def test_blend_respects_alpha():
    frame = np.zeros((2, 2, 3), dtype=np.uint8)
    overlay = np.zeros((1, 1, 4), dtype=np.uint8)
    overlay[..., 0] = 255  # red
    overlay[..., 3] = 255
    out = blend(frame, overlay)
    assert out.shape == (2, 2, 3)
    assert out[0, 0].tolist() == [0, 0, 255]  # BGR


def test_class_histogram_counts_pixels():
    mask = np.array([[0, 1, 1], [3, 3, 3]], dtype=np.uint8)
    assert class_histogram(mask, 4).tolist() == [1, 2, 0, 3]
