import base64
from io import BytesIO

import pytest
from bs4 import BeautifulSoup
from PIL import Image

from html_sheet_extractor.measurement import AttributeMeasurementProvider


@pytest.fixture
def make_soup():
    def _make(html: str) -> BeautifulSoup:
        return BeautifulSoup(html, "lxml")
    return _make


@pytest.fixture
def provider():
    return AttributeMeasurementProvider()


def _image_bytes(fmt: str = "PNG", size=(4, 4), color="red") -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def image_bytes():
    return _image_bytes


@pytest.fixture
def png_bytes():
    return _image_bytes("PNG")


@pytest.fixture
def png_data_url(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
