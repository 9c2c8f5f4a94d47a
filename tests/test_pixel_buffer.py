import numpy as np
import pytest

from seglive.inputs.pixel_buffer import PixelBuffer
from seglive.perception.segmentation.errors import InvalidFrameError


def test_bgra_to_rgb_swaps_channels_and_copies():
    data = np.zeros((2, 3, 4), dtype=np.uint8)
    data[..., 0] = 10  # B
    data[..., 1] = 20  # G
    data[..., 2] = 30  # R
    data[..., 3] = 255
    buf = PixelBuffer(data, "BGRA")
    rgb = buf.to_rgb()
    assert rgb.shape == (2, 3, 3)
    assert rgb[0, 0].tolist() == [30, 20, 10]
    assert not np.shares_memory(rgb, data)


def test_from_array_infers_format_by_channels():
    assert PixelBuffer.from_array(np.zeros((4, 4, 4), dtype=np.uint8)).pixel_format == "BGRA"
    assert PixelBuffer.from_array(np.zeros((4, 4, 3), dtype=np.uint8)).pixel_format == "BGR"
    assert PixelBuffer.from_array(np.zeros((4, 4, 3), dtype=np.uint8), "rgb").pixel_format == "RGB"


def test_buffer_is_read_only_view():
    data = np.zeros((4, 4, 3), dtype=np.uint8)
    buf = PixelBuffer(data, "RGB")
    assert np.shares_memory(buf.data, data)
    with pytest.raises(ValueError):
        buf.data[0, 0, 0] = 1
    # The caller's array stays writeable
    data[0, 0, 0] = 1


def test_from_bytes_honours_row_stride():
    width, height, stride = 2, 2, 12
    raw = bytes(range(stride * height))
    buf = PixelBuffer.from_bytes(raw, width, height, stride=stride, pixel_format="RGBA")
    assert (buf.width, buf.height, buf.stride, buf.channels) == (2, 2, 12, 4)
    assert buf.to_rgb()[1, 0].tolist() == [12, 13, 14]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"width": 4, "height": 2, "stride": 8},  # stride shorter than a row
        {"width": 0, "height": 2},
        {"width": 4, "height": 4},  # buffer too small
        {"width": 2, "height": 2, "pixel_format": "YUV420"},
    ],
)
def test_from_bytes_rejects_bad_layouts(kwargs):
    with pytest.raises(InvalidFrameError):
        PixelBuffer.from_bytes(bytes(32), **kwargs)


def test_from_array_compacts_flipped_and_sliced_views():
    data = np.arange(2 * 3 * 4, dtype=np.uint8).reshape(2, 3, 4)

    flipped = PixelBuffer.from_array(np.fliplr(data))
    assert flipped.pixel_format == "BGRA"
    assert flipped.stride == 12
    assert np.array_equal(flipped.to_rgb(), np.fliplr(data)[..., 2::-1])

    bgr = PixelBuffer.from_array(data[..., :3])
    assert bgr.pixel_format == "BGR"
    assert np.array_equal(bgr.to_rgb(), data[..., 2::-1])

    upside_down = PixelBuffer.from_array(np.flipud(data))
    assert upside_down.stride > 0


def test_constructor_still_rejects_non_interleaved_layouts():
    data = np.zeros((2, 3, 4), dtype=np.uint8)
    with pytest.raises(InvalidFrameError):
        PixelBuffer(np.fliplr(data), "BGRA")
    with pytest.raises(InvalidFrameError):
        PixelBuffer(data[..., :3], "BGR")
