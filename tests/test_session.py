import unittest
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from memopad.content.cursor import Selection
from memopad.core.config import EditorConfig
from memopad.core.dom import find_image_containers, inner_html, set_inner_html
from memopad.editor.session import EditorSession
from memopad.editor.store import NoteStore
from memopad.images.container import create_image_block
from memopad.images.ingest import FileItem
from memopad.images.preview import QueuedPreviewSurface
from tests.helpers import make_image_bytes, make_noise_png, make_oversized_png, sample_image


class MemoryNoteStore(NoteStore):
    def __init__(self, content=''):
        self.content = content
        self.history = []
        self.memos = 0

    def load_note(self):
        return self.content

    def save_note(self, content):
        self.content = content

    def save_note_to_history(self, content):
        self.content = content
        self.history.append(content)

    def create_new_memo(self):
        self.memos += 1
        self.content = ''
        return f"memo-{self.memos}"


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class SessionTestCase(unittest.TestCase):
    def setUp(self):
        self.store = MemoryNoteStore()
        self.clock = FakeClock()
        self.notifier = MagicMock()
        self.session = EditorSession(self.store, EditorConfig(), clock=self.clock,
                                     notifier=self.notifier,
                                     preview_factory=QueuedPreviewSurface)

    def advance(self, now):
        """Move the clock to now and run whatever is due."""
        self.clock.now = now
        return self.session.tick()

    def type_text(self, text, caret=None):
        """Replace the surface with text and fire an input notification."""
        set_inner_html(self.session.root, text)
        if caret is not None:
            self.session.selection = Selection(self.session.root.contents[0], caret)
        self.session.notify_change()


class TestDebouncedWork(SessionTestCase):
    def test_save_after_quiet_period(self):
        self.type_text("hello")
        self.assertEqual(self.advance(0.4), [])
        self.assertEqual(self.advance(0.5), ['save'])
        self.assertEqual(self.store.history, ["hello"])

    def test_burst_saves_once(self):
        self.type_text("h")
        self.clock.now = 0.3
        self.type_text("he")
        self.assertEqual(self.advance(0.6), [])
        self.assertEqual(self.advance(0.8), ['save'])
        self.assertEqual(self.store.history, ["he"])

    def test_blank_text_saved_without_history(self):
        self.store.content = 'old'
        self.type_text("")
        self.advance(1.0)
        self.assertEqual(self.store.content, '')
        self.assertEqual(self.store.history, [])

    def test_linkify_after_two_seconds_keeps_caret(self):
        self.type_text("visit www.example.com today", caret=10)

        self.assertEqual(self.advance(0.5), ['save'])
        self.assertIsNone(self.session.root.find('a'))

        self.assertEqual(self.advance(2.0), ['linkify'])
        anchor = self.session.root.find('a')
        self.assertEqual(anchor['href'], 'https://www.example.com')
        self.assertEqual(self.session.selection.node.parent.name, 'a')
        self.assertEqual(self.session.selection.offset, 4)

        # The rewrite added nodes, so a re-bind scan follows
        self.assertEqual(self.advance(2.2), ['rebind'])

    def test_linkify_skipped_without_urls(self):
        self.type_text("no links here")
        self.assertFalse(self.session.apply_linkify("no links here"))
        self.assertEqual(inner_html(self.session.root), "no links here")

    def test_linkify_noop_when_already_linked(self):
        self.type_text("see www.example.com")
        self.assertTrue(self.session.apply_linkify(self.session.pending_text))
        before = inner_html(self.session.root)
        self.assertFalse(self.session.apply_linkify(self.session.pending_text))
        self.assertEqual(inner_html(self.session.root), before)

    def test_skip_linkify(self):
        set_inner_html(self.session.root, "www.example.com")
        self.session.notify_change(skip_linkify=True)
        self.assertFalse(self.session.linkify_timer.pending)
        self.assertEqual(self.advance(5.0), ['save'])

    def test_save_failure_logged(self):
        self.store.save_note_to_history = MagicMock(side_effect=OSError("disk full"))
        self.type_text("text")
        with self.assertLogs('memopad.editor.session', level='ERROR'):
            self.assertEqual(self.advance(1.0), ['save'])

    def test_flush(self):
        self.type_text("pending")
        self.session.flush()
        self.assertEqual(self.store.history, ["pending"])
        self.assertEqual(self.advance(1.0), [])


class TestLifecycle(SessionTestCase):
    def test_load_renders_links_and_binds_images(self):
        markup = create_image_block(sample_image()).markup
        self.store.content = f"see www.example.com\n{markup}"

        self.assertTrue(self.session.load())

        self.assertIsNotNone(self.session.root.find('a'))
        self.assertEqual(len(find_image_containers(self.session.root)), 1)
        self.assertEqual(len(self.session.registry), 1)

    def test_load_failure_keeps_surface(self):
        set_inner_html(self.session.root, "stale")
        self.store.load_note = MagicMock(side_effect=OSError("unreadable"))
        with self.assertLogs('memopad.editor.session', level='ERROR'):
            self.assertFalse(self.session.load())
        self.assertEqual(inner_html(self.session.root), "stale")

    def test_new_memo_discards_pending_work(self):
        self.type_text("old memo www.example.com")
        self.assertEqual(self.session.new_memo(), "memo-1")
        self.assertEqual(inner_html(self.session.root), '')
        self.assertEqual(self.advance(10.0), [])
        self.assertEqual(self.store.history, [])


class TestImageEvents(SessionTestCase):
    def test_paste_and_drop_size_policy(self):
        data = make_noise_png(1500, 1500)
        self.assertGreater(len(data), 5 * 1024 * 1024)
        self.assertLess(len(data), 10 * 1024 * 1024)

        pasted = self.session.paste([FileItem('image/png', data, name='big.png')])
        self.assertIsNone(pasted)
        self.notifier.assert_called_once()
        self.assertIn('too large', self.notifier.call_args[0][0])
        self.assertEqual(find_image_containers(self.session.root), [])
        self.assertFalse(self.session.save_timer.pending)

        dropped = self.session.drop([FileItem('image/png', data, name='big.png')])
        self.assertEqual(len(dropped), 1)
        self.assertEqual(len(find_image_containers(self.session.root)), 1)
        self.assertTrue(self.session.save_timer.pending)

    def test_paste_first_image_only(self):
        items = [
            FileItem('text/plain', b'hello'),
            FileItem('image/png', make_image_bytes(10, 10)),
            FileItem('image/png', make_image_bytes(20, 20)),
        ]
        container = self.session.paste(items)
        self.assertIsNotNone(container)
        self.assertEqual(len(find_image_containers(self.session.root)), 1)
        self.assertEqual(container.find('img')['data-width'], '10')

    def test_paste_decode_failure_stops(self):
        items = [FileItem('image/png', b'broken'), FileItem('image/png', make_image_bytes(10, 10))]
        self.assertIsNone(self.session.paste(items))
        self.notifier.assert_called_once()
        self.assertEqual(find_image_containers(self.session.root), [])

    def test_paste_over_pixel_limit_reports_notice(self):
        pasted = self.session.paste([FileItem('image/png', make_oversized_png(), name='huge.png')])
        self.assertIsNone(pasted)
        self.notifier.assert_called_once()
        self.assertEqual(find_image_containers(self.session.root), [])

    def test_pasted_image_resizable_before_rebind(self):
        container = self.session.paste([FileItem('image/png', make_image_bytes(400, 300))])

        self.assertTrue(self.session.rebind_timer.pending)
        self.assertTrue(self.session.pointer_down(container, 0))
        self.assertEqual(self.session.pointer_move(-100), 300)
        self.assertTrue(self.session.pointer_up())
        self.assertEqual(self.session.rebind_images(), [])

    def test_drop_inserts_every_image(self):
        files = [FileItem('image/png', make_image_bytes(10, 10)),
                 FileItem('application/pdf', b'%PDF'),
                 FileItem('image/jpeg', make_image_bytes(10, 10, fmt='JPEG'))]
        self.assertEqual(len(self.session.drop(files)), 2)

    def test_inserted_image_is_saved_in_text(self):
        self.type_text("caption", caret=7)
        self.session.paste([FileItem('image/png', make_image_bytes(10, 10))])
        self.advance(1.0)
        self.assertTrue(self.store.history[-1].startswith("caption<div class=\"image-container\""))

    def test_resize_saves_without_linkify(self):
        self.session.drop([FileItem('image/png', make_image_bytes(400, 300))])
        self.advance(10.0)
        self.session.rebind_images()
        container = find_image_containers(self.session.root)[0]

        self.assertTrue(self.session.pointer_down(container, 0))
        self.assertEqual(self.session.pointer_move(-100), 300)
        self.assertTrue(self.session.pointer_up())

        self.assertTrue(self.session.save_timer.pending)
        self.assertFalse(self.session.linkify_timer.pending)
        self.advance(20.0)
        self.assertIn('width: 300px', self.store.history[-1])

    def test_delete_selected_image(self):
        self.session.drop([FileItem('image/png', make_image_bytes(10, 10))])
        self.advance(10.0)
        container = find_image_containers(self.session.root)[0]

        self.session.click(container.find('img'))
        self.assertTrue(self.session.key_down('Delete'))
        self.assertEqual(find_image_containers(self.session.root), [])
        self.assertFalse(self.session.linkify_timer.pending)

    def test_double_click_opens_preview(self):
        self.session.drop([FileItem('image/png', make_image_bytes(10, 10))])
        img = find_image_containers(self.session.root)[0].find('img')
        self.assertTrue(self.session.double_click(img))


if __name__ == '__main__':
    unittest.main()
