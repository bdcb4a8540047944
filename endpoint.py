"""Endpoint rules handed to the streaming recognizer.

Three independent rules are OR-combined. Each rule fires when

    (not requires_prior_speech or speech was detected)
    and trailing silence >= trailing_silence_threshold_s
    and utterance length >= max_utterance_s

Rule 1 waits longer when nothing was said yet, rule 2 cuts quickly once speech
was heard, rule 3 caps the whole utterance. The thresholds are product tuning
values and must not change without updating the tests that pin them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EndpointRule:
    requires_prior_speech: bool
    trailing_silence_threshold_s: float
    max_utterance_s: float

    def is_satisfied(
        self,
        speech_detected: bool,
        trailing_silence_s: float,
        utterance_s: float,
    ) -> bool:
        if self.requires_prior_speech and not speech_detected:
            return False
        return (
            trailing_silence_s >= self.trailing_silence_threshold_s
            and utterance_s >= self.max_utterance_s
        )


RULE1_NO_SPEECH_SILENCE = EndpointRule(
    requires_prior_speech=False,
    trailing_silence_threshold_s=2.4,
    max_utterance_s=0.0,
)
RULE2_AFTER_SPEECH_SILENCE = EndpointRule(
    requires_prior_speech=True,
    trailing_silence_threshold_s=1.2,
    max_utterance_s=0.0,
)
RULE3_MAX_UTTERANCE = EndpointRule(
    requires_prior_speech=False,
    trailing_silence_threshold_s=0.0,
    max_utterance_s=20.0,
)


@dataclass(frozen=True)
class EndpointRuleSet:
    rule1: EndpointRule = RULE1_NO_SPEECH_SILENCE
    rule2: EndpointRule = RULE2_AFTER_SPEECH_SILENCE
    rule3: EndpointRule = RULE3_MAX_UTTERANCE

    @property
    def rules(self) -> tuple[EndpointRule, EndpointRule, EndpointRule]:
        return (self.rule1, self.rule2, self.rule3)

    def is_endpoint(
        self,
        speech_detected: bool,
        trailing_silence_s: float,
        utterance_s: float,
    ) -> bool:
        return any(
            rule.is_satisfied(speech_detected, trailing_silence_s, utterance_s)
            for rule in self.rules
        )

    def recognizer_kwargs(self) -> dict:
        """Keyword arguments for the ``sherpa_onnx.OnlineRecognizer`` factories.

        sherpa-onnx fixes the speech-required flags to (False, True, False)
        and takes one threshold per rule, which is the shape of the default
        rules. Any other shape raises ValueError.
        """
        unsupported = []
        if (self.rule1.requires_prior_speech, self.rule2.requires_prior_speech,
                self.rule3.requires_prior_speech) != (False, True, False):
            unsupported.append("speech-required flags must be (False, True, False)")
        if self.rule1.max_utterance_s or self.rule2.max_utterance_s:
            unsupported.append("rules 1 and 2 cannot set a minimum utterance length")
        if self.rule3.trailing_silence_threshold_s:
            unsupported.append("rule 3 cannot set a trailing silence threshold")
        if unsupported:
            raise ValueError("endpoint rules not supported by sherpa-onnx: " + "; ".join(unsupported))
        return {
            "enable_endpoint_detection": True,
            "rule1_min_trailing_silence": self.rule1.trailing_silence_threshold_s,
            "rule2_min_trailing_silence": self.rule2.trailing_silence_threshold_s,
            "rule3_min_utterance_length": self.rule3.max_utterance_s,
        }


DEFAULT_ENDPOINT_RULES = EndpointRuleSet()
