import json
import os
import queue
import threading
import time

COMMANDS = (
    "energy on",
    "energy off",
    "energy",
    "reset",
)


def _resolve_model_dir(path: str) -> str:
    """Resolve the real VOSK model directory.

    Rules:
    - If the folder contains a single subfolder that itself has am/, use the subfolder.
    - Otherwise, use the folder directly.
    """
    base = os.path.abspath(path)
    if not os.path.isdir(base):
        return base

    entries = [d for d in os.listdir(base) if not d.startswith('.')]
    if len(entries) == 1:
        candidate = os.path.join(base, entries[0])
        if os.path.isdir(candidate) and os.path.isdir(os.path.join(candidate, "am")):
            return candidate

    return base


class CommandGate:
    """Wake word arms the gate for a few seconds; the next phrase is the command.

    "robin energy on" works as a single utterance. Longer phrases are matched
    first so "energy on" never degrades to the bare "energy" toggle.
    """

    def __init__(self, wake_word="robin", arm_seconds=2.0, commands=COMMANDS, clock=time.time):
        self.wake_word = (wake_word or "robin").strip().lower()
        self.arm_seconds = float(arm_seconds)
        self.commands = sorted(commands, key=len, reverse=True)
        self.clock = clock
        self._armed_until = 0.0
        self._cmd_q = queue.Queue()

    @property
    def phrases(self):
        return [self.wake_word] + list(self.commands)

    @property
    def armed(self) -> bool:
        return self.clock() <= self._armed_until

    def feed(self, text: str, partial: bool = False):
        text = (text or "").strip().lower()
        if not text:
            return

        if self.wake_word in text.split():
            self._armed_until = self.clock() + self.arm_seconds
            remaining = text.split(self.wake_word, 1)[1].strip()
            if remaining and not partial:
                self._match(remaining)
            return

        if not self.armed or partial:
            return

        self._match(text)

    def pop_command(self):
        try:
            return self._cmd_q.get_nowait()
        except queue.Empty:
            return None

    def _match(self, text: str):
        for phrase in self.commands:
            if phrase == text or phrase in text:
                self._cmd_q.put(phrase)
                self._armed_until = 0.0
                return


class VoiceCommands:
    """Wake-word gated operator commands using VOSK."""

    def __init__(self, model_path="models/vosk-model-small-en-us-0.15", sample_rate=16000, wake_word="robin", arm_seconds=2.0):
        from vosk import Model, KaldiRecognizer

        self.model_path = _resolve_model_dir(model_path)
        self.sample_rate = int(sample_rate)
        self.gate = CommandGate(wake_word=wake_word, arm_seconds=arm_seconds)

        if not os.path.isdir(self.model_path):
            raise RuntimeError(f"VOSK model dir not found: {self.model_path}")

        self.model = Model(self.model_path)
        grammar = json.dumps(self.gate.phrases + ["[unk]"])
        self.rec = KaldiRecognizer(self.model, self.sample_rate, grammar)

        self._audio_q = queue.Queue()
        self._stop = threading.Event()
        self._thread = None

    def start(self):
        if self._thread and self._thread.is_alive():
            return

        import sounddevice as sd

        def callback(indata, frames, t, status):
            if status:
                return
            self._audio_q.put(bytes(indata))

        def worker():
            block = 2000  # ~125ms at 16k
            with sd.RawInputStream(
                samplerate=self.sample_rate,
                blocksize=block,
                dtype="int16",
                channels=1,
                callback=callback,
            ):
                print(f"✅ Voice thread started (wake word: {self.gate.wake_word})")
                while not self._stop.is_set():
                    try:
                        data = self._audio_q.get(timeout=0.5)
                    except queue.Empty:
                        continue
                    if self.rec.AcceptWaveform(data):
                        res = json.loads(self.rec.Result() or "{}")
                        self.gate.feed(res.get("text") or "")
                    else:
                        pres = json.loads(self.rec.PartialResult() or "{}")
                        self.gate.feed(pres.get("partial") or "", partial=True)

        self._thread = threading.Thread(target=worker, daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()

    def pop_command(self):
        return self.gate.pop_command()
