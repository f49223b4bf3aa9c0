import base64
import io
import os

from PIL import Image

from memopad.images.ingest import NormalizedImage, to_data_url

TINY_PNG_URL = 'data:image/png;base64,iVBORw0KGgo='


def make_image_bytes(width, height, fmt='PNG', color=(200, 30, 30)):
    mode = 'RGBA' if fmt == 'PNG' else 'RGB'
    fill = color if mode == 'RGB' else color + (255,)
    image = Image.new(mode, (width, height), fill)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_noise_png(width, height):
    """Random RGB pixels barely compress, so the PNG is roughly width*height*3 bytes."""
    image = Image.frombytes('RGB', (width, height), os.urandom(width * height * 3))
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()


def sample_image(width=400, height=300):
    return NormalizedImage(TINY_PNG_URL, 'image/png', width, height)


def decode_data_url(data_url):
    header, _, payload = data_url.partition(',')
    return header, base64.b64decode(payload)


def open_data_url(data_url):
    _, payload = decode_data_url(data_url)
    return Image.open(io.BytesIO(payload))


def png_data_url(width=10, height=10):
    return to_data_url(make_image_bytes(width, height), 'image/png')


def make_oversized_png(width=14000, height=13000):
    """A blank 1-bit PNG: a few kilobytes on disk, past Pillow's pixel limit when opened."""
    image = Image.new('1', (width, height))
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()
