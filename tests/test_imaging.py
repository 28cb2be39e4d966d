import numpy as np
import pytest

from nodeimage.imaging import (
    ImageBuffer,
    ImageError,
    adjust_brightness_contrast,
    compute_histogram,
    gaussian_blur,
    gaussian_kernel,
    load_image,
    otsu_threshold,
    save_image,
    split_channels,
)


@pytest.fixture
def sample():
    rng = np.random.default_rng(1234)
    return ImageBuffer.from_array(rng.integers(0, 256, size=(5, 7, 4), dtype=np.uint8))


def test_from_array_rejects_wrong_shape():
    with pytest.raises(ValueError):
        ImageBuffer.from_array(np.zeros((4, 4, 3), dtype=np.uint8))


def test_dimensions(sample):
    assert sample.width == 7
    assert sample.height == 5


def test_to_array_and_copy_are_independent(sample):
    arr = sample.to_array()
    arr[0, 0, 0] ^= 0xFF
    assert not np.array_equal(arr, sample.pixels)
    dup = sample.copy()
    dup.pixels[0, 0, 1] ^= 0xFF
    assert not np.array_equal(dup.pixels, sample.pixels)


@pytest.mark.parametrize("suffix", [".png", ".bmp"])
def test_lossless_round_trip(tmp_path, sample, suffix):
    path = tmp_path / f"image{suffix}"
    save_image(sample, path)
    loaded = load_image(path)
    assert np.array_equal(loaded.pixels, sample.pixels)


def test_jpg_round_trip_keeps_size(tmp_path, sample):
    path = tmp_path / "image.jpg"
    save_image(sample, path)
    loaded = load_image(path)
    assert loaded.size == sample.size
    assert np.all(loaded.pixels[..., 3] == 255)


def test_save_unknown_extension(tmp_path, sample):
    with pytest.raises(ValueError):
        save_image(sample, tmp_path / "image.tga")


def test_load_missing_file(tmp_path):
    with pytest.raises(ImageError):
        load_image(tmp_path / "missing.png")


def test_brightness_contrast_identity(sample):
    result = adjust_brightness_contrast(sample, 0.0, 1.0)
    assert np.array_equal(result.pixels, sample.pixels)


def test_brightness_max_saturates_and_keeps_alpha(sample):
    result = adjust_brightness_contrast(sample, 100.0, 1.0)
    assert np.all(result.pixels[..., :3] == 255)
    assert np.array_equal(result.pixels[..., 3], sample.pixels[..., 3])


def test_brightness_min_darkens_to_zero(sample):
    result = adjust_brightness_contrast(sample, -100.0, 1.0)
    assert int(result.pixels[..., :3].max()) == 0
    assert result.size == sample.size
    assert np.array_equal(result.pixels[..., 3], sample.pixels[..., 3])


def test_zero_contrast_gives_flat_grey(sample):
    result = adjust_brightness_contrast(sample, 0.0, 0.0)
    assert len(np.unique(result.pixels[..., :3])) == 1


def test_split_channels_plain(sample):
    red, green, blue, alpha = split_channels(sample, [False] * 4)
    src = sample.pixels
    assert np.array_equal(red.pixels[..., 0], src[..., 0])
    assert np.all(red.pixels[..., 1:3] == 0)
    assert np.array_equal(green.pixels[..., 1], src[..., 1])
    assert np.array_equal(blue.pixels[..., 2], src[..., 2])
    assert np.array_equal(red.pixels[..., 3], src[..., 3])
    assert np.all(alpha.pixels[..., :3] == 0)
    assert np.all(alpha.pixels[..., 3] == 255)


def test_split_channels_greyscale(sample):
    red, green, blue, alpha = split_channels(sample, [True] * 4)
    src = sample.pixels
    for i, buf in enumerate((red, green, blue)):
        for c in range(3):
            assert np.array_equal(buf.pixels[..., c], src[..., i])
    for c in range(4):
        assert np.array_equal(alpha.pixels[..., c], src[..., 3])


def test_split_channels_flag_count(sample):
    with pytest.raises(ValueError):
        split_channels(sample, [True, False])


@pytest.mark.parametrize("radius", [1, 3, 10])
def test_gaussian_kernel_properties(radius):
    kernel = gaussian_kernel(radius)
    assert len(kernel) == 2 * radius + 1
    assert kernel.sum() == pytest.approx(1.0, abs=1e-5)
    assert np.allclose(kernel, kernel[::-1])
    assert np.argmax(kernel) == radius


def test_gaussian_kernel_zero_radius_is_identity():
    assert list(gaussian_kernel(0)) == [1.0]


def test_gaussian_kernel_negative_radius():
    with pytest.raises(ValueError):
        gaussian_kernel(-1)


def test_blur_radius_zero_is_identity(sample):
    assert np.array_equal(gaussian_blur(sample, 0, True).pixels, sample.pixels)


def test_horizontal_blur_does_not_mix_rows():
    arr = np.zeros((2, 6, 4), dtype=np.uint8)
    arr[1] = 255
    result = gaussian_blur(ImageBuffer.from_array(arr), 2, True)
    assert result.size == (6, 2) or result.width == 6
    assert int(result.pixels[0].max()) == 0
    assert int(result.pixels[1].min()) >= 254


def test_vertical_blur_mixes_rows():
    arr = np.zeros((6, 2, 4), dtype=np.uint8)
    arr[3:] = 255
    result = gaussian_blur(ImageBuffer.from_array(arr), 2, False)
    column = result.pixels[:, 0, 0]
    assert 0 < column[2] < 255
    assert list(column) == sorted(column)


def test_histogram_counts(sample):
    histogram, max_value = compute_histogram(sample)
    assert len(histogram) == 256
    assert histogram.sum() == sample.width * sample.height
    assert max_value == histogram.max()


def test_otsu_splits_two_levels():
    arr = np.zeros((4, 4, 4), dtype=np.uint8)
    arr[:2, ..., :3] = 10
    arr[2:, ..., :3] = 200
    threshold = otsu_threshold(ImageBuffer.from_array(arr))
    assert 10 <= threshold < 200


def test_otsu_uniform_image():
    arr = np.full((3, 3, 4), 50, dtype=np.uint8)
    assert otsu_threshold(ImageBuffer.from_array(arr)) == 0