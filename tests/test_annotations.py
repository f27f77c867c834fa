import pathlib
import sys
import unittest

import pytest

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for path in (SRC, ROOT / "tests"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from builders import aux, build_annotation_bytes, regular_beats, skip, word  # noqa: E402
from ecgmonitor.core.models import BeatType  # noqa: E402
from ecgmonitor.dataio.annotations import (  # noqa: E402
    beat_type_for_code,
    decode_annotations,
    iter_annotations,
)
from ecgmonitor.errors import ParseError, ParseErrorKind  # noqa: E402


class AnnotationDecodeTest(unittest.TestCase):
    def test_regular_beats_decode_to_seconds(self):
        data = build_annotation_bytes(regular_beats(360, 0.8, 5, start_s=0.5))

        beats = decode_annotations(data, 360.0)

        self.assertEqual(len(beats), 5)
        for i, beat in enumerate(beats):
            self.assertAlmostEqual(beat.time_s, 0.5 + 0.8 * i, places=6)
            self.assertIs(beat.beat_type, BeatType.NORMAL)
            self.assertEqual(beat.code, 1)

    def test_decoding_is_idempotent(self):
        data = build_annotation_bytes(regular_beats(360, 0.75, 20))
        self.assertEqual(decode_annotations(data), decode_annotations(data))

    def test_times_are_non_decreasing(self):
        events = [(100, 1), (100, 5), (500, 1), (2500, 8), (2900, 1)]
        beats = decode_annotations(build_annotation_bytes(events))

        times = [b.time_s for b in beats]
        self.assertEqual(times, sorted(times))

    def test_skip_carries_large_deltas(self):
        data = word(1, 100) + skip(70000) + word(5, 0) + word(0, 0)

        beats = decode_annotations(data, 360.0)

        self.assertEqual([b.sample for b in beats], [100, 70100])
        self.assertIs(beats[1].beat_type, BeatType.PREMATURE_VENTRICULAR)

    def test_skip_with_high_word(self):
        data = skip(0x00012345) + word(1, 0)
        beats = decode_annotations(data)
        self.assertEqual(beats[0].sample, 0x12345)

    def test_num_sub_chn_do_not_move_the_counter(self):
        data = word(1, 100) + word(60, 7) + word(61, 1) + word(62, 2) + word(1, 50) + word(0, 0)
        beats = decode_annotations(data)
        self.assertEqual([b.sample for b in beats], [100, 150])

    def test_aux_attaches_to_preceding_annotation(self):
        data = word(28, 10) + aux(b"(AFIB") + word(1, 20) + word(0, 0)

        events = decode_annotations(data, include_markers=True)

        self.assertEqual(events[0].aux, "(AFIB")
        self.assertIs(events[0].beat_type, BeatType.NON_BEAT_MARKER)
        self.assertIsNone(events[1].aux)
        self.assertEqual(events[1].sample, 30)

    def test_markers_are_dropped_by_default(self):
        data = word(1, 100) + word(28, 10) + word(1, 200) + word(0, 0)

        beats = decode_annotations(data)
        everything = decode_annotations(data, include_markers=True)

        self.assertEqual([b.sample for b in beats], [100, 310])
        self.assertEqual(len(everything), 3)

    def test_zero_word_ends_stream(self):
        data = word(1, 10) + word(0, 0) + word(1, 10)
        self.assertEqual(len(decode_annotations(data)), 1)

    def test_missing_terminator_is_accepted(self):
        data = build_annotation_bytes(regular_beats(360, 1.0, 3), terminate=False)
        self.assertEqual(len(decode_annotations(data)), 3)

    def test_trailing_odd_byte_is_ignored(self):
        data = build_annotation_bytes(regular_beats(360, 1.0, 3), terminate=False) + b"\x07"
        self.assertEqual(len(decode_annotations(data)), 3)

    def test_time_resolution_note_overrides_rate(self):
        data = word(22, 0) + aux(b"## time resolution: 250") + word(1, 250) + word(0, 0)

        beats = decode_annotations(data, 360.0)

        self.assertEqual(len(beats), 1)
        self.assertAlmostEqual(beats[0].time_s, 1.0)

    def test_iter_annotations_is_lazy(self):
        data = word(1, 10) + word(1, 10) + word(55, 0)
        stream = iter_annotations(data)
        self.assertEqual(next(stream).sample, 10)


class AnnotationErrorTest(unittest.TestCase):
    def assertKind(self, data, kind):
        with self.assertRaises(ParseError) as ctx:
            decode_annotations(data)
        self.assertEqual(ctx.exception.kind, kind)

    def test_reserved_escape_code_is_rejected(self):
        for code in (50, 55, 58):
            with self.subTest(code=code):
                self.assertKind(word(1, 10) + word(code, 0), ParseErrorKind.UNKNOWN_ESCAPE_CODE)

    def test_truncated_skip_payload(self):
        self.assertKind(word(1, 10) + word(59, 0) + b"\x01\x00", ParseErrorKind.TRUNCATED)

    def test_truncated_aux_payload(self):
        self.assertKind(word(1, 10) + word(63, 10) + b"abcd", ParseErrorKind.TRUNCATED)

    def test_rate_must_be_positive(self):
        with self.assertRaises(ValueError):
            decode_annotations(word(1, 10), 0.0)


@pytest.mark.parametrize(
    "code, expected",
    [
        (1, BeatType.NORMAL),
        (2, BeatType.NORMAL),
        (11, BeatType.NORMAL),
        (5, BeatType.PREMATURE_VENTRICULAR),
        (10, BeatType.PREMATURE_VENTRICULAR),
        (41, BeatType.PREMATURE_VENTRICULAR),
        (4, BeatType.ABERRANT),
        (8, BeatType.ABERRANT),
        (9, BeatType.ABERRANT),
        (6, BeatType.UNKNOWN),
        (12, BeatType.UNKNOWN),
        (13, BeatType.UNKNOWN),
        (30, BeatType.UNKNOWN),
        (14, BeatType.NON_BEAT_MARKER),
        (28, BeatType.NON_BEAT_MARKER),
        (45, BeatType.NON_BEAT_MARKER),
    ],
)
def test_code_mapping(code, expected):
    assert beat_type_for_code(code) is expected


if __name__ == "__main__":
    unittest.main()
