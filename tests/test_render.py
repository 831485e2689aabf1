import io
from pathlib import Path

import pytest
from PIL import Image

from cbr2pdf.exceptions import RenderError
from cbr2pdf.render import PAGE_DENSITY, render_page, target_size
from cbr2pdf.testing import jpeg_bytes
from cbr2pdf.types_ import ImageReference, Resolution

READER = Resolution(1072, 1448)


@pytest.mark.parametrize("size", [(800, 1200), (1, 1000), (1199, 1200), (600, 4000)])
def test_portrait_binds_height(size):
    w, h = target_size(*size, READER)
    assert h == READER.height
    assert abs(w / h - size[0] / size[1]) * h <= 1


@pytest.mark.parametrize("size", [(1200, 800), (1000, 1), (500, 500), (4000, 600)])
def test_landscape_and_square_bind_width(size):
    w, h = target_size(*size, READER)
    assert w == READER.width
    assert abs(h - size[1] * w / size[0]) <= 1
    assert h >= 1


def test_unbound_axis_may_exceed_reader():
    # a nearly square portrait page is wider than the reader once its height is bound
    w, h = target_size(1190, 1200, READER)
    assert h == 1448
    assert w > READER.width


def test_target_size_rejects_empty_image():
    with pytest.raises(ValueError):
        target_size(0, 10, READER)


def write_jpeg(tmp_path: Path, name: str, size, **save_kwargs) -> Path:
    p = tmp_path / name
    Image.new("RGB", size, (10, 120, 200)).save(p, format="JPEG", **save_kwargs)
    return p


def test_render_portrait_jpeg(tmp_path: Path):
    src = write_jpeg(tmp_path, "001.jpg", (300, 600))
    page = render_page(ImageReference(src, 1), Resolution(100, 200))
    assert page.pixel_size == (100, 200)
    assert page.page_size == pytest.approx((100 / PAGE_DENSITY, 200 / PAGE_DENSITY))
    assert page.media_type == "image/jpeg"
    assert page.source == src
    with Image.open(io.BytesIO(page.data)) as img:
        assert img.format == "JPEG"
        assert img.size == (100, 200)


def test_render_landscape_png_with_alpha(tmp_path: Path):
    src = tmp_path / "spread.png"
    Image.new("RGBA", (600, 300), (0, 0, 0, 0)).save(src)
    page = render_page(ImageReference(src, 1), Resolution(100, 200))
    assert page.pixel_size == (100, 50)
    with Image.open(io.BytesIO(page.data)) as img:
        assert img.mode == "RGB"


def test_exif_orientation_is_applied(tmp_path: Path):
    exif = Image.Exif()
    exif[0x0112] = 6  # rotated 90 degrees
    src = write_jpeg(tmp_path, "rotated.jpg", (300, 600), exif=exif)
    page = render_page(ImageReference(src, 1), Resolution(100, 200))
    # displayed as 600x300 landscape: width is the binding axis
    assert page.pixel_size == (100, 50)


def test_decode_error(tmp_path: Path):
    src = tmp_path / "002.jpg"
    src.write_bytes(b"not an image")
    with pytest.raises(RenderError) as exc:
        render_page(ImageReference(src, 2), READER)
    assert exc.value.step == "decode"
    assert exc.value.path == src
    assert exc.value.__cause__ is not None


def test_resample_error(tmp_path: Path):
    src = tmp_path / "001.jpg"
    src.write_bytes(jpeg_bytes(600, 300))
    with pytest.raises(RenderError) as exc:
        render_page(ImageReference(src, 1), Resolution(0, 0))
    assert exc.value.step == "resample"


def test_encode_error(tmp_path: Path):
    src = write_jpeg(tmp_path, "001.jpg", (30, 60))

    class BrokenEncoder:
        media_type = "image/jpeg"

        def decode(self, path):
            return Image.open(path)

        def encode(self, image):
            raise OSError("disk on fire")

    with pytest.raises(RenderError) as exc:
        render_page(ImageReference(src, 1), Resolution(10, 20), codec=BrokenEncoder())
    assert exc.value.step == "encode"
    assert "disk on fire" in str(exc.value)
