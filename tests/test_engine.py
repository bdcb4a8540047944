"""End-to-end tests for VoiceEngine wired with fake devices and models."""

from __future__ import annotations

import time

import pytest

from config import EngineConfig
from engine import VoiceEngine
from errors import RECOGNIZER_UNAVAILABLE, SYNTHESIZER_UNAVAILABLE
from fakes import FakeFrameSource, FakeOnlineRecognizer, FakeSink, FakeSynthesizer, wait_until
from models import DuplexState
from recognizer import StreamingRecognitionSession


def _engine(
    amplitude: float = 0.0,
    transcript: str = "",
    auto_resume: bool = True,
    events: list[str] | None = None,
    errors: list[tuple[str, str]] | None = None,
) -> tuple[VoiceEngine, FakeFrameSource, FakeOnlineRecognizer]:
    events = events if events is not None else []
    source = FakeFrameSource(events, amplitude=amplitude)
    recognizer = FakeOnlineRecognizer(transcript=transcript)
    engine = VoiceEngine(
        source=source,
        session=StreamingRecognitionSession(recognizer),
        synthesizer=FakeSynthesizer(),
        sink=FakeSink(events),
        auto_resume=auto_resume,
        resume_delay_s=0.01,
        on_error=(lambda code, msg: errors.append((code, msg))) if errors is not None else None,
    )
    return engine, source, recognizer


def test_missing_models_disable_both_subsystems(tmp_path) -> None:  # noqa: ANN001
    errors: list[tuple[str, str]] = []
    config = EngineConfig()
    config.recognizer.tokens = str(tmp_path / "missing-tokens.txt")

    engine = VoiceEngine.from_config(config, on_error=lambda code, msg: errors.append((code, msg)))

    assert engine.recognizer_available is False
    assert engine.synthesizer_available is False
    assert engine.start_listening() is False
    assert engine.speak("hello") is False
    assert engine.state.flush()
    assert [code for code, _ in errors] == [RECOGNIZER_UNAVAILABLE, SYNTHESIZER_UNAVAILABLE]
    assert engine.is_listening is False
    engine.release()


def test_silence_keeps_listening_and_resets_on_endpoint() -> None:
    engine, source, recognizer = _engine(amplitude=0.0)

    assert engine.start_listening() is True
    assert wait_until(lambda: source.reads >= 50)

    assert engine.is_listening is True
    assert engine.audio_level == 0.0
    assert engine.recognized_text == ""
    # 1024-sample frames at 16 kHz: the first no-speech endpoint lands on the
    # frame that crosses 2.4 s of trailing silence.
    assert recognizer.reset_times
    assert 2.4 <= recognizer.reset_times[0] <= 2.4 + 0.064
    assert len(recognizer.streams) == 1

    engine.release()
    assert engine.is_listening is False


def test_repeated_hypothesis_is_emitted_once() -> None:
    engine, source, _ = _engine(amplitude=0.5, transcript="Hello")
    emitted: list[str] = []
    engine.subscribe("recognized_text", emitted.append)

    engine.start_listening()
    assert wait_until(lambda: source.reads >= 30)
    engine.stop_listening()

    assert engine.state.flush()
    assert emitted == ["hello"]
    assert engine.recognized_text == "hello"
    assert engine.audio_level == 0.0


def test_level_is_published_while_listening() -> None:
    engine, _, _ = _engine(amplitude=0.25)
    levels: list[float] = []
    engine.subscribe("audio_level", levels.append)

    engine.start_listening()
    assert wait_until(lambda: 0.25 in levels)
    engine.release()

    assert levels[-1] == 0.0


@pytest.mark.parametrize("auto_resume", [True, False])
def test_speak_interrupts_listening(auto_resume: bool) -> None:
    events: list[str] = []
    engine, source, _ = _engine(auto_resume=auto_resume, events=events)
    listening: list[bool] = []
    engine.subscribe("is_listening", listening.append)

    engine.start_listening()
    assert wait_until(lambda: source.reads >= 3)
    assert engine.speak("ready") is True

    assert wait_until(lambda: "spk_release" in events)
    assert events.index("mic_close") < events.index("spk_open")
    if auto_resume:
        assert wait_until(lambda: engine.is_listening)
        assert source.opens == 2
        assert engine.state.flush()
        assert listening == [True, False, True]
    else:
        assert wait_until(lambda: engine.duplex_state == DuplexState.IDLE)
        time.sleep(0.1)
        assert engine.is_listening is False
        assert source.opens == 1
        assert engine.state.flush()
        assert listening == [True, False]
    engine.release()


def test_snapshot_reflects_state() -> None:
    engine, source, _ = _engine(amplitude=0.5, transcript="open the door")

    engine.start_listening()
    assert wait_until(lambda: engine.recognized_text == "open the door")
    snap = engine.snapshot()
    engine.release()

    assert snap.is_listening is True
    assert snap.recognized_text == "open the door"
    assert snap.audio_level == 0.5


def test_release_twice_is_safe() -> None:
    errors: list[tuple[str, str]] = []
    engine, source, _ = _engine(errors=errors)

    engine.start_listening()
    engine.release()
    engine.release()

    assert engine.start_listening() is False
    assert engine.speak("hello") is False
    engine.stop_listening()
    assert source.opens == 1
    assert errors == []


def test_subscribe_unknown_field() -> None:
    engine, _, _ = _engine()
    with pytest.raises(ValueError):
        engine.subscribe("volume", lambda _: None)


def test_voice_command_can_stop_the_engine() -> None:
    engine, source, _ = _engine(amplitude=0.5, transcript="stop")
    engine.subscribe("recognized_text", lambda text: engine.stop_listening() if text == "stop" else None)

    engine.start_listening()

    assert wait_until(lambda: not engine.is_listening)
    assert source.is_open is False
    started = time.time()
    engine.release()
    assert time.time() - started < 1.0
