from __future__ import annotations

from pathlib import Path

from config import (
    DEFAULT_HOTKEYS,
    JsonConfigStore,
    RecognizerModels,
    SynthesizerModels,
    missing_files,
)


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_auto_resume() is True
    assert store.get_hotkey("listen") == DEFAULT_HOTKEYS["listen"]

    store.set_auto_resume(False)
    store.set_hotkey("listen", "Key.f2")
    store.set_recognizer_models(RecognizerModels(encoder="e.onnx", decoder="d.onnx", tokens="t.txt"))
    store.set_synthesizer_models(SynthesizerModels(model="v.onnx", tokens="vt.txt", data_dir="espeak"))

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_auto_resume() is False
    assert reloaded.get_hotkey("listen") == "Key.f2"
    assert reloaded.get_hotkey("speak") == DEFAULT_HOTKEYS["speak"]
    assert reloaded.get_recognizer_models().encoder == "e.onnx"
    assert reloaded.get_synthesizer_models().data_dir == "espeak"


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    config = store.load_engine_config()
    assert store.get_auto_resume() is True
    assert store.get_log_level() == "INFO"
    assert config.recognizer == RecognizerModels()
    assert config.resume_delay_s == 0.5


def test_engine_config_ignores_unknown_and_bad_values(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        '{"recognizer": {"encoder": "e.onnx", "bogus": 1}, "speed": "fast", "voice_id": 3,'
        ' "resume_delay_s": 1.5, "auto_resume": false}',
        encoding="utf-8",
    )

    config = JsonConfigStore(path=path).load_engine_config()
    assert config.recognizer.encoder == "e.onnx"
    assert config.speed == 1.0
    assert config.voice_id == 3
    assert config.resume_delay_s == 1.5
    assert config.auto_resume is False


def test_missing_files_reports_absent_and_empty(tmp_path: Path) -> None:
    good = tmp_path / "model.onnx"
    good.write_bytes(b"\x01")
    empty = tmp_path / "empty.onnx"
    empty.write_bytes(b"")

    assert missing_files([str(good)]) == []
    assert missing_files([str(good), str(empty), str(tmp_path / "nope"), ""]) == [
        str(empty),
        str(tmp_path / "nope"),
        "",
    ]


def test_recognizer_model_type_follows_joiner() -> None:
    assert RecognizerModels().model_type == "paraformer"
    models = RecognizerModels(encoder="e", decoder="d", tokens="t", joiner="j")
    assert models.model_type == "transducer"
    assert models.required_files() == ["e", "d", "t", "j"]


def test_data_dir_resolves_only_when_populated(tmp_path: Path) -> None:
    data_dir = tmp_path / "espeak-ng-data"
    assert SynthesizerModels(data_dir=str(data_dir)).resolved_data_dir() == ""
    data_dir.mkdir()
    assert SynthesizerModels(data_dir=str(data_dir)).resolved_data_dir() == ""
    (data_dir / "phontab").write_bytes(b"x")
    assert SynthesizerModels(data_dir=str(data_dir)).resolved_data_dir() == str(data_dir)
