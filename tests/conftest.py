"""
Shared fixtures: small images and in-memory workbooks.
"""
import base64
import io
import random

import pytest
from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from PIL import Image


def make_png(size=(20, 20), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_noise_image(size=(256, 256), seed=1234) -> Image.Image:
    rng = random.Random(seed)
    data = bytes(rng.getrandbits(8) for _ in range(size[0] * size[1] * 3))
    return Image.frombytes("RGB", size, data)


def to_data_uri(data: bytes, mime_type="image/png") -> str:
    return f"data:{mime_type};base64," + base64.b64encode(data).decode("ascii")


def build_workbook(sheets) -> bytes:
    """
    sheets: list of (title, rows, embedded) where rows is a list of row value
    lists and embedded a list of (anchor_cell, image_bytes).
    """
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows, embedded in sheets:
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
        for anchor, image_bytes in embedded:
            ws.add_image(XLImage(io.BytesIO(image_bytes)), anchor)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def noise_png():
    buffer = io.BytesIO()
    make_noise_image().save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def people_workbook():
    """One sheet: Name/Photo header, Alice and Bob with data-URI PNGs."""
    rows = [
        ["Name", "Photo"],
        ["Alice", to_data_uri(make_png(color=(255, 0, 0)))],
        ["Bob", to_data_uri(make_png(color=(0, 0, 255)))],
    ]
    return build_workbook([("People", rows, [])])
