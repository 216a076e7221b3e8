import unittest

from voice_bridge.bot.tone_selector import TONES, tone_for


class TestToneSelector(unittest.TestCase):

    def test_known_labels(self):
        for label, tone in TONES.items():
            self.assertEqual(tone_for(label), tone)

    def test_case_insensitive(self):
        self.assertEqual(tone_for("ANGRY"), TONES["angry"])
        self.assertEqual(tone_for("  Sad "), TONES["sad"])

    def test_unknown_and_empty_fall_back_to_neutral(self):
        for label in [None, "", "bewildered"]:
            self.assertEqual(tone_for(label), TONES["neutral"])

    def test_same_label_same_tone(self):
        self.assertEqual(tone_for("anxious"), tone_for("anxious"))


if __name__ == "__main__":
    unittest.main()
