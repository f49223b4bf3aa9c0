import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from memopad.content.cursor import Selection
from memopad.core.config import MB, EditorConfig
from memopad.core.dom import (
    IMAGE_CONTAINER_CLASS,
    INSERTED_IMAGE_CLASS,
    RESIZE_HANDLE_CLASS,
    create_surface,
    find_image_containers,
    has_class,
)
from memopad.images.container import build_container, container_from_block, ingest, insert_at_cursor
from memopad.images.ingest import (
    SOURCE_DROP,
    SOURCE_PASTE,
    FileItem,
    ImageDecodeError,
    ImageTooLargeError,
    UnsupportedImageError,
    ingest_image,
    scaled_size,
    to_data_url,
)
from tests.helpers import decode_data_url, make_image_bytes, make_oversized_png, open_data_url, sample_image


class TestScaledSize(unittest.TestCase):
    def test_downscale_keeps_aspect(self):
        self.assertEqual(scaled_size(3200, 1600, 1600), (1600, 800))
        self.assertEqual(scaled_size(1000, 4000, 1600), (400, 1600))

    def test_never_upscales(self):
        self.assertEqual(scaled_size(100, 50, 1600), (100, 50))

    def test_minimum_one_pixel(self):
        self.assertEqual(scaled_size(10000, 1, 1600), (1600, 1))


class TestIngestImage(unittest.TestCase):
    def setUp(self):
        self.config = EditorConfig()

    def test_large_png_downscaled(self):
        item = FileItem('image/png', make_image_bytes(3200, 1600))
        image = ingest_image(item, SOURCE_DROP, self.config)

        self.assertEqual(image.mime, 'image/png')
        self.assertEqual((image.width, image.height), (1600, 800))
        with open_data_url(image.data_url) as decoded:
            self.assertEqual(decoded.format, 'PNG')
            self.assertEqual(decoded.size, (1600, 800))

    def test_jpeg_stays_jpeg(self):
        for mime in ('image/jpeg', 'image/jpg'):
            with self.subTest(mime=mime):
                item = FileItem(mime, make_image_bytes(200, 100, fmt='JPEG'))
                image = ingest_image(item, SOURCE_PASTE, self.config)
                header, _ = decode_data_url(image.data_url)
                self.assertEqual(header, 'data:image/jpeg;base64')
                self.assertEqual((image.width, image.height), (200, 100))

    def test_other_formats_become_png(self):
        item = FileItem('image/bmp', make_image_bytes(40, 30, fmt='BMP'))
        image = ingest_image(item, SOURCE_PASTE, self.config)
        self.assertEqual(image.mime, 'image/png')
        with open_data_url(image.data_url) as decoded:
            self.assertEqual(decoded.format, 'PNG')

    def test_gif_passes_through(self):
        data = make_image_bytes(2000, 20, fmt='GIF')
        image = ingest_image(FileItem('image/gif', data), SOURCE_PASTE, self.config)

        self.assertEqual(image.data_url, to_data_url(data, 'image/gif'))
        self.assertEqual((image.width, image.height), (2000, 20))

    def test_undecodable_bytes(self):
        with self.assertRaises(ImageDecodeError) as ctx:
            ingest_image(FileItem('image/png', b'not an image'), SOURCE_PASTE, self.config)
        self.assertTrue(ctx.exception.message)

    def test_pixel_count_over_limit_is_decode_error(self):
        data = make_oversized_png()
        self.assertLess(len(data), self.config.paste_size_limit)
        with self.assertRaises(ImageDecodeError):
            ingest_image(FileItem('image/png', data), SOURCE_PASTE, self.config)

    def test_not_an_image(self):
        with self.assertRaises(UnsupportedImageError):
            ingest_image(FileItem('text/plain', b'hello'), SOURCE_DROP, self.config)

    def test_size_limits_depend_on_source(self):
        data = make_image_bytes(20, 20)
        item = FileItem('image/png', data, name='big.png', size=6 * MB)

        with self.assertRaises(ImageTooLargeError) as ctx:
            ingest_image(item, SOURCE_PASTE, self.config)
        self.assertEqual(ctx.exception.limit, 5 * MB)
        self.assertIn('5 MB', ctx.exception.message)

        image = ingest_image(item, SOURCE_DROP, self.config)
        self.assertEqual((image.width, image.height), (20, 20))

        item.size = 11 * MB
        with self.assertRaises(ImageTooLargeError):
            ingest_image(item, SOURCE_DROP, self.config)

    def test_unknown_source(self):
        with self.assertRaises(ValueError):
            ingest_image(FileItem('image/png', make_image_bytes(5, 5)), 'clipboard', self.config)


class TestContainer(unittest.TestCase):
    def test_structure(self):
        container = build_container(sample_image(400, 300))

        self.assertTrue(has_class(container, IMAGE_CONTAINER_CLASS))
        self.assertEqual(container['contenteditable'], 'false')
        img = container.find('img')
        self.assertTrue(has_class(img, INSERTED_IMAGE_CLASS))
        self.assertEqual(img['data-width'], '400')
        self.assertEqual(img['draggable'], 'false')
        self.assertIsNotNone(container.find(lambda t: has_class(t, RESIZE_HANDLE_CLASS)))

    def test_ingest_produces_block(self):
        block = ingest(FileItem('image/png', make_image_bytes(30, 20)), SOURCE_PASTE, EditorConfig())
        self.assertIn(block.data_url, block.markup)
        self.assertTrue(has_class(container_from_block(block), IMAGE_CONTAINER_CLASS))


class TestInsertAtCursor(unittest.TestCase):
    def setUp(self):
        self.container = build_container(sample_image())

    def test_appends_without_caret(self):
        root = create_surface("text")
        insert_at_cursor(root, self.container, Selection())
        self.assertIs(root.contents[-1], self.container)

    def test_splits_text_node(self):
        root = create_surface("helloworld")
        selection = Selection(root.contents[0], 5)
        insert_at_cursor(root, self.container, selection)

        self.assertEqual([str(c) for c in root.contents[::2]], ["hello", "world"])
        self.assertIs(root.contents[1], self.container)
        self.assertIs(selection.node, root)
        self.assertEqual(selection.offset, 2)

    def test_caret_in_element(self):
        root = create_surface("a<br>b")
        selection = Selection(root, 1)
        insert_at_cursor(root, self.container, selection)
        self.assertIs(root.contents[1], self.container)
        self.assertEqual(selection.offset, 2)

    def test_never_nests_in_container(self):
        root = create_surface()
        first = build_container(sample_image())
        root.append(first)
        selection = Selection(first, 0)

        insert_at_cursor(root, self.container, selection)

        self.assertEqual(len(find_image_containers(root)), 2)
        self.assertIs(self.container.parent, root)
        self.assertIs(root.contents[1], self.container)


if __name__ == '__main__':
    unittest.main()
