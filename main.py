"""Console entrypoint: toggle listening and speak a test phrase with hotkeys."""

from __future__ import annotations

import logging
import sys
import threading

from config import JsonConfigStore
from engine import VoiceEngine
from errors import ERROR_MESSAGES
from hotkey import GlobalHotkeyAdapter
from interfaces import ConfigStore
from models import DuplexState

TEST_PHRASE = "System initialized. Ready for instructions."
LEVEL_BAR_WIDTH = 20

logger = logging.getLogger("duplex_voice")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def render_level(level: float, width: int = LEVEL_BAR_WIDTH) -> str:
    # Peak levels of normal speech sit well below 1.0, so amplify for display.
    filled = int(round(min(1.0, level * 5.0) * width))
    return "[" + "#" * filled + " " * (width - filled) + "]"


class App:
    def __init__(self, config_store: ConfigStore | None = None) -> None:
        self.config_store = config_store or JsonConfigStore()
        setup_logging(self.config_store.get_log_level())
        self._done = threading.Event()
        self.engine = VoiceEngine.from_config(
            self.config_store.load_engine_config(),
            on_state_change=self._on_state_change,
            on_error=self._on_error,
        )
        self.engine.subscribe("recognized_text", self._on_text)
        self.engine.subscribe("audio_level", self._on_level)
        self.listen_key = self.config_store.get_hotkey("listen")
        self.speak_key = self.config_store.get_hotkey("speak")
        self.hotkey = GlobalHotkeyAdapter(
            {
                self.listen_key: self.toggle_listening,
                self.speak_key: self.speak_test_phrase,
            }
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def toggle_listening(self) -> None:
        if self.engine.is_listening:
            self.engine.stop_listening()
        else:
            self.engine.start_listening()

    def speak_test_phrase(self) -> None:
        self.engine.speak(TEST_PHRASE)

    # ------------------------------------------------------------------
    # Engine callbacks (worker threads)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: DuplexState, to_state: DuplexState) -> None:
        print(f"\n[{to_state.value}]", flush=True)

    def _on_text(self, text: str) -> None:
        print(f"\r> {text}", flush=True)

    def _on_level(self, level: float) -> None:
        print(f"\r{render_level(level)}", end="", flush=True)

    def _on_error(self, code: str, message: str) -> None:
        hint = ERROR_MESSAGES.get(code, "")
        print(f"\n! {code}: {message}", flush=True)
        if hint and hint != message:
            print(f"  {hint}", flush=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        if not self.engine.recognizer_available:
            print("Recognition models are missing; listening is disabled.")
        if not self.engine.synthesizer_available:
            print("Voice model is missing; speech output is disabled.")
        try:
            self.hotkey.start()
        except Exception as exc:
            logger.error("Hotkeys disabled: %s", exc)
            self.quit()
            return 1
        print(f"{self.listen_key}: start/stop listening, {self.speak_key}: test speech, Ctrl+C: quit")
        try:
            while not self._done.wait(0.5):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            self.quit()
        return 0

    def quit(self) -> None:
        if self._done.is_set():
            return
        self._done.set()
        self.hotkey.stop()
        self.engine.release()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
