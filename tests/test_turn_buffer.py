import unittest

from voice_bridge.session.turn_buffer import (
    AudioFragment,
    FinalityTurnBuffer,
    TextFragment,
    WindowedTurnBuffer,
    create_turn_buffer,
)

from conftest import ManualClock


class TestWindowedTurnBuffer(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock(0.0)
        self.buffer = WindowedTurnBuffer(window_seconds=1.2, clock=self.clock)

    def test_fragments_inside_window_are_only_buffered(self):
        for i in range(5):
            decision = self.buffer.push(AudioFragment(bytes([i])), now=0.2 * (i + 1))
            self.assertFalse(decision.flushed)
        self.assertTrue(self.buffer.has_pending)

    def test_five_fragments_then_silence_flush_once(self):
        for i in range(5):
            self.buffer.push(AudioFragment(bytes([i])), now=0.2 * (i + 1))

        decision = self.buffer.poll(now=2.5)
        self.assertTrue(decision.flushed)
        self.assertEqual(len(decision.turn.fragments), 5)
        self.assertEqual(decision.turn.audio, bytes([0, 1, 2, 3, 4]))
        self.assertEqual(decision.turn.trigger, "window")

        # nothing pending afterwards, so later polls do not flush again
        self.assertFalse(self.buffer.poll(now=10.0).flushed)

    def test_at_most_one_flush_per_window(self):
        flushes = []
        t = 0.0
        for i in range(30):
            t += 0.1
            decision = self.buffer.push(AudioFragment(bytes([i])), now=t)
            if decision.flushed:
                flushes.append((t, decision.turn))
        self.assertEqual(len(flushes), 2)
        self.assertGreater(flushes[1][0] - flushes[0][0], 1.2)

        # payloads are consecutive and in arrival order
        collected = b"".join(turn.audio for _, turn in flushes) + b"".join(
            f.data for f in self.buffer.state.pending
        )
        self.assertEqual(collected, bytes(range(30)))

    def test_poll_without_fragments_does_not_flush(self):
        self.assertFalse(self.buffer.poll(now=100.0).flushed)

    def test_partial_text_is_not_buffered(self):
        self.buffer.push(TextFragment("book an", is_final=False), now=0.1)
        self.assertEqual(self.buffer.partial_text, "book an")
        self.assertFalse(self.buffer.has_pending)

    def test_flush_resets_state_but_keeps_emotion(self):
        self.buffer.push(TextFragment("hi", is_final=True, emotion="Happy"), now=0.1)
        decision = self.buffer.poll(now=2.0)
        self.assertEqual(decision.turn.emotion, "happy")
        self.assertEqual(self.buffer.state.last_flush, 2.0)
        self.assertFalse(self.buffer.has_pending)
        self.assertEqual(self.buffer.emotion, "happy")


class TestFirstFragmentAnchor(unittest.TestCase):

    def setUp(self):
        self.buffer = WindowedTurnBuffer(window_seconds=1.2, clock=ManualClock(0.0),
                                         anchor_first_fragment=True)

    def test_first_chunk_after_silence_waits_for_window(self):
        self.assertFalse(self.buffer.push(AudioFragment(b"a"), now=30.0).flushed)
        self.assertFalse(self.buffer.push(AudioFragment(b"b"), now=30.6).flushed)

        decision = self.buffer.poll(now=31.5)
        self.assertTrue(decision.flushed)
        self.assertEqual(decision.turn.audio, b"ab")

    def test_default_anchor_flushes_first_chunk_after_silence(self):
        buffer = WindowedTurnBuffer(window_seconds=1.2, clock=ManualClock(0.0))
        decision = buffer.push(AudioFragment(b"a"), now=30.0)
        self.assertTrue(decision.flushed)


class TestFinalityTurnBuffer(unittest.TestCase):

    def setUp(self):
        self.buffer = FinalityTurnBuffer(clock=ManualClock(0.0))

    def test_final_fragment_flushes_immediately(self):
        decision = self.buffer.push(TextFragment("I'd like to book an appointment", is_final=True))
        self.assertTrue(decision.flushed)
        self.assertEqual(decision.turn.text, "I'd like to book an appointment")
        self.assertEqual(decision.turn.trigger, "final")

    def test_partial_fragments_update_view_only(self):
        self.assertFalse(self.buffer.push(TextFragment("I'd", is_final=False)).flushed)
        self.assertFalse(self.buffer.push(TextFragment("I'd like", is_final=False)).flushed)
        self.assertEqual(self.buffer.partial_text, "I'd like")

        decision = self.buffer.push(TextFragment("I'd like a slot", is_final=True))
        self.assertEqual(decision.turn.text, "I'd like a slot")
        self.assertEqual(self.buffer.partial_text, "")

    def test_audio_rides_along_with_next_final(self):
        self.assertFalse(self.buffer.push(AudioFragment(b"ab")).flushed)
        decision = self.buffer.push(TextFragment("hello"))
        self.assertEqual(decision.turn.audio, b"ab")
        self.assertEqual(decision.turn.text, "hello")

    def test_emotion_defaults_to_neutral_and_is_sticky(self):
        first = self.buffer.push(TextFragment("hi"))
        self.assertEqual(first.turn.emotion, "neutral")
        self.buffer.push(TextFragment("ugh", emotion="angry"))
        third = self.buffer.push(TextFragment("anyway"))
        self.assertEqual(third.turn.emotion, "angry")

    def test_audio_without_transcript_flushes_after_window(self):
        for i in range(3):
            decision = self.buffer.push(AudioFragment(bytes([i])), now=4.0 + 0.5 * i)
            self.assertFalse(decision.flushed)
        self.assertFalse(self.buffer.poll(now=5.1).flushed)

        decision = self.buffer.poll(now=5.3)
        self.assertTrue(decision.flushed)
        self.assertEqual(decision.turn.trigger, "audio_timeout")
        self.assertEqual(decision.turn.audio, bytes([0, 1, 2]))
        self.assertFalse(self.buffer.has_pending)

    def test_audio_stream_keeps_flushing(self):
        flushed = []
        for i in range(100):
            decision = self.buffer.push(AudioFragment(b"x"), now=0.1 * i)
            if decision.flushed:
                flushed.append(decision.turn)
        self.assertGreaterEqual(len(flushed), 7)
        self.assertLessEqual(len(self.buffer.state.pending), 13)

    def test_drain_flushes_pending(self):
        self.assertFalse(self.buffer.drain().flushed)
        self.buffer.push(AudioFragment(b"xyz"))
        decision = self.buffer.drain()
        self.assertTrue(decision.flushed)
        self.assertEqual(decision.turn.trigger, "drain")
        self.assertFalse(self.buffer.has_pending)


class TestCreateTurnBuffer(unittest.TestCase):

    def test_policies(self):
        self.assertIsInstance(create_turn_buffer("windowed", 1.5), WindowedTurnBuffer)
        self.assertIsInstance(create_turn_buffer("finality"), FinalityTurnBuffer)
        self.assertEqual(create_turn_buffer("finality", 2.0).window_seconds, 2.0)
        self.assertTrue(create_turn_buffer("windowed", anchor_first_fragment=True).anchor_first_fragment)
        with self.assertRaises(ValueError):
            create_turn_buffer("vad")


if __name__ == "__main__":
    unittest.main()
