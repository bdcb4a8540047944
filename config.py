"""Simple JSON-based config store and engine configuration."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path

DEFAULT_HOTKEYS = {
    "listen": "Key.f8",
    "speak": "Key.f9",
}


def missing_files(paths: list[str]) -> list[str]:
    """Return every path that does not exist or is empty."""
    missing = []
    for raw in paths:
        path = Path(raw).expanduser() if raw else None
        if path is None or not path.is_file() or path.stat().st_size == 0:
            missing.append(raw)
    return missing


@dataclass
class RecognizerModels:
    encoder: str = ""
    decoder: str = ""
    tokens: str = ""
    joiner: str = ""
    num_threads: int = 1
    provider: str = "cpu"
    decoding_method: str = "greedy_search"

    @property
    def model_type(self) -> str:
        return "transducer" if self.joiner else "paraformer"

    def required_files(self) -> list[str]:
        files = [self.encoder, self.decoder, self.tokens]
        if self.joiner:
            files.append(self.joiner)
        return files

    def missing(self) -> list[str]:
        return missing_files(self.required_files())


@dataclass
class SynthesizerModels:
    model: str = ""
    tokens: str = ""
    data_dir: str = ""
    lexicon: str = ""
    num_threads: int = 1
    provider: str = "cpu"
    noise_scale: float = 0.667
    noise_scale_w: float = 0.8
    length_scale: float = 1.0

    def required_files(self) -> list[str]:
        return [self.model, self.tokens]

    def missing(self) -> list[str]:
        return missing_files(self.required_files())

    def resolved_data_dir(self) -> str:
        """The phoneme data directory, or "" when it is not present."""
        if not self.data_dir:
            return ""
        path = Path(self.data_dir).expanduser()
        if path.is_dir() and any(path.iterdir()):
            return str(path)
        return ""


@dataclass
class EngineConfig:
    recognizer: RecognizerModels = field(default_factory=RecognizerModels)
    synthesizer: SynthesizerModels = field(default_factory=SynthesizerModels)
    auto_resume: bool = True
    resume_delay_s: float = 0.5
    voice_id: int = 0
    speed: float = 1.0
    frame_size: int = 1024


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "duplex_voice" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_recognizer_models(self) -> RecognizerModels:
        return _load_section(RecognizerModels, self._read_all().get("recognizer"))

    def set_recognizer_models(self, models: RecognizerModels) -> None:
        data = self._read_all()
        data["recognizer"] = asdict(models)
        self._write_all(data)

    def get_synthesizer_models(self) -> SynthesizerModels:
        return _load_section(SynthesizerModels, self._read_all().get("synthesizer"))

    def set_synthesizer_models(self, models: SynthesizerModels) -> None:
        data = self._read_all()
        data["synthesizer"] = asdict(models)
        self._write_all(data)

    def get_auto_resume(self) -> bool:
        return bool(self._read_all().get("auto_resume", True))

    def set_auto_resume(self, enabled: bool) -> None:
        data = self._read_all()
        data["auto_resume"] = bool(enabled)
        self._write_all(data)

    def get_hotkey(self, action: str) -> str:
        hotkeys = self._read_all().get("hotkeys", {})
        if not isinstance(hotkeys, dict):
            hotkeys = {}
        return str(hotkeys.get(action, DEFAULT_HOTKEYS.get(action, "")))

    def set_hotkey(self, action: str, hotkey: str) -> None:
        data = self._read_all()
        hotkeys = data.get("hotkeys")
        if not isinstance(hotkeys, dict):
            hotkeys = {}
        hotkeys[action] = hotkey
        data["hotkeys"] = hotkeys
        self._write_all(data)

    def get_log_level(self) -> str:
        return str(self._read_all().get("log_level", "INFO"))

    def load_engine_config(self) -> EngineConfig:
        data = self._read_all()
        defaults = EngineConfig()
        return EngineConfig(
            recognizer=_load_section(RecognizerModels, data.get("recognizer")),
            synthesizer=_load_section(SynthesizerModels, data.get("synthesizer")),
            auto_resume=bool(data.get("auto_resume", defaults.auto_resume)),
            resume_delay_s=_as_float(data.get("resume_delay_s"), defaults.resume_delay_s),
            voice_id=int(_as_float(data.get("voice_id"), defaults.voice_id)),
            speed=_as_float(data.get("speed"), defaults.speed),
            frame_size=int(_as_float(data.get("frame_size"), defaults.frame_size)),
        )

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def _load_section(cls, raw: object):
    if not isinstance(raw, dict):
        return cls()
    known = {name for name in cls.__dataclass_fields__}
    return cls(**{k: v for k, v in raw.items() if k in known})


def _as_float(value: object, default: float) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return float(default)
