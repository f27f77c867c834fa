import pathlib
import sys
import unittest

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ecgmonitor.tools import debug  # noqa: E402


class TimeBlockTest(unittest.TestCase):
    def setUp(self):
        self._saved = debug.DEBUG_ECGMONITOR

    def tearDown(self):
        debug.DEBUG_ECGMONITOR = self._saved

    def test_silent_when_disabled(self):
        debug.DEBUG_ECGMONITOR = False
        messages = []
        with debug.time_block("decode", emitter=messages.append):
            pass
        self.assertFalse(debug.debug_enabled())
        self.assertEqual(messages, [])

    def test_reports_elapsed_when_enabled(self):
        debug.DEBUG_ECGMONITOR = True
        messages = []
        with debug.time_block("decode", emitter=messages.append):
            pass
        self.assertTrue(debug.debug_enabled())
        self.assertEqual(len(messages), 1)
        self.assertTrue(messages[0].startswith("[DEBUG] decode took "))

    def test_reports_even_when_block_raises(self):
        debug.DEBUG_ECGMONITOR = True
        messages = []
        with self.assertRaises(RuntimeError):
            with debug.time_block("decode", emitter=messages.append):
                raise RuntimeError("boom")
        self.assertEqual(len(messages), 1)


if __name__ == "__main__":
    unittest.main()
