from __future__ import annotations

import io
from pathlib import Path
from typing import Callable, Sequence
import sys

import pytest
from PIL import Image, ImageDraw

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

PAGE_COLORS = [(220, 30, 30), (30, 200, 30), (30, 30, 220), (230, 230, 40)]


def _encode_tiff(images: Sequence[Image.Image], **options) -> bytes:
    buffer = io.BytesIO()
    first, *rest = images
    if rest:
        options["save_all"] = True
        options["append_images"] = rest
    first.save(buffer, format="TIFF", **options)
    return buffer.getvalue()


def _noisy_page(size: tuple[int, int], tint: tuple[int, int, int]) -> Image.Image:
    noise = Image.effect_noise(size, 90).convert("RGB")
    return Image.blend(noise, Image.new("RGB", size, tint), 0.4)


@pytest.fixture()
def tiff_factory() -> Callable[..., bytes]:
    """Build TIFF bytes from a list of page sizes or ready-made images."""

    def _create(pages, *, mode: str = "RGB", noisy: bool = False, **options) -> bytes:
        images = []
        for index, page in enumerate(pages):
            if isinstance(page, Image.Image):
                images.append(page)
                continue
            color = PAGE_COLORS[index % len(PAGE_COLORS)]
            if noisy:
                images.append(_noisy_page(page, color))
            else:
                images.append(Image.new("RGB", page, color).convert(mode))
        return _encode_tiff(images, **options)

    return _create


@pytest.fixture()
def single_page_tiff(tiff_factory: Callable[..., bytes]) -> bytes:
    return tiff_factory([(320, 240)])


@pytest.fixture()
def three_page_tiff(tiff_factory: Callable[..., bytes]) -> bytes:
    return tiff_factory([(800, 600)] * 3, dpi=(200, 200))


@pytest.fixture()
def noisy_tiff(tiff_factory: Callable[..., bytes]) -> bytes:
    return tiff_factory([(400, 300)] * 2, noisy=True)


@pytest.fixture()
def mixed_size_tiff(tiff_factory: Callable[..., bytes]) -> bytes:
    return tiff_factory([(400, 300), (300, 400), (200, 200)])


@pytest.fixture()
def tiff_file(tmp_path: Path, three_page_tiff: bytes) -> Path:
    path = tmp_path / "scan.tiff"
    path.write_bytes(three_page_tiff)
    return path


@pytest.fixture()
def text_page_tiff(tiff_factory: Callable[..., bytes]) -> bytes:
    """Three grey pages of ruled text lines, like an office scan."""

    pages = []
    for number in range(3):
        page = Image.new("L", (850, 1100), 255)
        draw = ImageDraw.Draw(page)
        for line in range(40):
            y = 60 + line * 24
            draw.text((60, y), f"Page {number + 1} line {line + 1}: invoice item and amount due", fill=0)
            draw.line((60, y + 16, 790, y + 16), fill=200)
        pages.append(page)
    return tiff_factory(pages, dpi=(100, 100))
