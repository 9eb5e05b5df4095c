import os
import tempfile
import unittest

from voice_cmd import CommandGate, _resolve_model_dir


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestCommandGate(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.gate = CommandGate(wake_word="robin", arm_seconds=2.0, clock=self.clock)

    def test_single_utterance(self):
        self.gate.feed("robin energy on")
        self.assertEqual(self.gate.pop_command(), "energy on")
        self.assertIsNone(self.gate.pop_command())

    def test_longest_phrase_wins(self):
        self.gate.feed("robin energy off")
        self.assertEqual(self.gate.pop_command(), "energy off")
        self.gate.feed("robin energy")
        self.assertEqual(self.gate.pop_command(), "energy")

    def test_wake_word_then_command(self):
        self.gate.feed("robin")
        self.assertTrue(self.gate.armed)
        self.clock.now += 1.0
        self.gate.feed("reset")
        self.assertEqual(self.gate.pop_command(), "reset")

    def test_arming_expires(self):
        self.gate.feed("robin")
        self.clock.now += 3.0
        self.gate.feed("reset")
        self.assertIsNone(self.gate.pop_command())

    def test_unarmed_speech_ignored(self):
        self.gate.feed("energy on")
        self.assertIsNone(self.gate.pop_command())

    def test_command_disarms(self):
        self.gate.feed("robin reset")
        self.gate.pop_command()
        self.gate.feed("energy")
        self.assertIsNone(self.gate.pop_command())

    def test_partials_arm_but_never_dispatch(self):
        self.gate.feed("robin energy", partial=True)
        self.assertTrue(self.gate.armed)
        self.assertIsNone(self.gate.pop_command())
        self.gate.feed("energy on", partial=True)
        self.assertIsNone(self.gate.pop_command())
        self.gate.feed("energy on")
        self.assertEqual(self.gate.pop_command(), "energy on")

    def test_phrases_include_wake_word(self):
        self.assertEqual(self.gate.phrases[0], "robin")
        self.assertIn("energy off", self.gate.phrases)


class TestModelDir(unittest.TestCase):
    def test_single_nested_model_folder(self):
        with tempfile.TemporaryDirectory() as root:
            nested = os.path.join(root, "vosk-model-small")
            os.makedirs(os.path.join(nested, "am"))
            self.assertEqual(_resolve_model_dir(root), nested)

    def test_flat_model_folder(self):
        with tempfile.TemporaryDirectory() as root:
            os.makedirs(os.path.join(root, "am"))
            os.makedirs(os.path.join(root, "conf"))
            self.assertEqual(_resolve_model_dir(root), os.path.abspath(root))


if __name__ == '__main__':
    unittest.main()
