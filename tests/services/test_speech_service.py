"""
Tests for services.speech_service: mode locking, cancellation and
recognizer coordination. The platform engine, player and recognizer are
in-memory fakes; the session sleep is instant.
"""

import asyncio
from typing import List, Optional

import pytest

from domain.models import SpeechMode, SynthesizedAudio
from services.speech_service import (
    QUOTA_NOTICE,
    TEXT_ONLY_NOTICE,
    CancellationToken,
    SpeechCancelled,
    SpeechSession,
)
from shared_utils.error_handler import SpeechSynthesisError


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

async def instant_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)


class FakeNeural:
    def __init__(self, fail_on: Optional[set] = None, quota: bool = False) -> None:
        self.calls: List[str] = []
        self.fail_on = fail_on or set()
        self.quota = quota

    async def synthesize(self, text: str) -> SynthesizedAudio:
        self.calls.append(text)
        if len(self.calls) in self.fail_on:
            raise SpeechSynthesisError("boom", status_code=429, quota_exceeded=self.quota)
        return SynthesizedAudio(content=text.encode(), content_type="audio/mpeg")


class FakeEngine:
    def __init__(self, voices=("Samantha", "Daniel"), available: bool = True, delay: float = 0.0) -> None:
        self._voices = list(voices)
        self._available = available
        self.delay = delay
        self.spoken: List[str] = []
        self.used_voices: List[Optional[str]] = []
        self.cancel_calls = 0
        self.on_speak = None
        self.active = 0
        self.max_active = 0

    @property
    def available(self) -> bool:
        return self._available

    def voices(self) -> List[str]:
        return self._voices

    async def speak(self, text, voice, rate, pitch, volume) -> None:
        self.spoken.append(text)
        self.used_voices.append(voice)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        if self.on_speak:
            self.on_speak()
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1

    def cancel(self) -> None:
        self.cancel_calls += 1


class FakePlayer:
    def __init__(self) -> None:
        self.played: List[bytes] = []
        self.stop_calls = 0

    async def play(self, audio: SynthesizedAudio) -> None:
        self.played.append(audio.content)

    def stop(self) -> None:
        self.stop_calls += 1


class FakeRecognizer:
    def __init__(self, listening: bool = True) -> None:
        self._listening = listening
        self.start_calls = 0
        self.stop_calls = 0

    @property
    def listening(self) -> bool:
        return self._listening

    def start(self) -> None:
        self._listening = True
        self.start_calls += 1

    def stop(self) -> None:
        self._listening = False
        self.stop_calls += 1


def _session(**kwargs) -> SpeechSession:
    kwargs.setdefault("sleep", instant_sleep)
    return SpeechSession(**kwargs)


# ---------------------------------------------------------------------------
# CancellationToken
# ---------------------------------------------------------------------------

class TestCancellationToken:
    def test_cancel(self) -> None:
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()
        assert token.cancelled
        with pytest.raises(SpeechCancelled):
            token.raise_if_cancelled()


# ---------------------------------------------------------------------------
# Mode selection
# ---------------------------------------------------------------------------

class TestModeSelection:
    @pytest.mark.asyncio
    async def test_neural_mode(self) -> None:
        neural, player, recognizer = FakeNeural(), FakePlayer(), FakeRecognizer()
        session = _session(neural=neural, player=player, recognizer=recognizer)

        assert await session.speak_response("Hello there, team. Let's begin!") is True
        assert session.mode == SpeechMode.NEURAL
        assert player.played == [b"Hello there,", b"team.", b"Let's begin!"]
        assert recognizer.stop_calls == 1
        assert recognizer.start_calls == 1
        assert session.speaking is False

    @pytest.mark.asyncio
    async def test_first_phrase_failure_locks_browser(self) -> None:
        neural, engine = FakeNeural(fail_on={1}), FakeEngine()
        session = _session(neural=neural, engine=engine, preferred_voice="Daniel")

        assert await session.speak_response("First answer.") is True
        assert session.mode == SpeechMode.BROWSER
        assert engine.spoken == ["First answer."]
        assert engine.used_voices == ["Daniel"]

        # the neural voice would work now, but the mode never switches back
        await session.speak_response("Second answer.")
        assert neural.calls == ["First answer."]
        assert engine.spoken[-1] == "Second answer."

    @pytest.mark.asyncio
    async def test_quota_notice(self) -> None:
        session = _session(neural=FakeNeural(fail_on={1}, quota=True), engine=FakeEngine())
        await session.speak_response("Hi.")
        assert session.notices == [QUOTA_NOTICE]

    @pytest.mark.asyncio
    async def test_neural_phrase_failure_is_skipped(self) -> None:
        neural, player = FakeNeural(fail_on={2}), FakePlayer()
        session = _session(neural=neural, player=player)
        assert await session.speak_response("One. Two. Three.") is True
        assert session.mode == SpeechMode.NEURAL
        assert player.played == [b"One.", b"Three."]

    @pytest.mark.asyncio
    async def test_text_only(self) -> None:
        session = _session(engine=FakeEngine(available=False))
        assert await session.speak_response("Hi.") is False
        assert session.notices == [TEXT_ONLY_NOTICE]

    @pytest.mark.asyncio
    async def test_first_voice_when_preferred_missing(self) -> None:
        engine = FakeEngine()
        await _session(engine=engine, preferred_voice="Zed").speak_response("Hi.")
        assert engine.used_voices == ["Samantha"]

    @pytest.mark.asyncio
    async def test_markup_only_text_does_not_lock_mode(self) -> None:
        neural = FakeNeural()
        session = _session(neural=neural)
        assert await session.speak_response("**") is True
        assert session.mode == SpeechMode.UNSET
        assert neural.calls == []

    @pytest.mark.asyncio
    async def test_blank_text(self) -> None:
        assert await _session().speak_response("   ") is False


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class TestCancellation:
    @pytest.mark.asyncio
    async def test_newest_response_wins(self) -> None:
        engine = FakeEngine(delay=0.01)
        session = _session(engine=engine)

        first = asyncio.create_task(session.speak_response("One. Two. Three."))
        while not engine.spoken:
            await asyncio.sleep(0)

        assert await session.speak_response("New.") is True
        assert await first is False
        await session.drain()

        assert "New." in engine.spoken
        assert "Three." not in engine.spoken
        assert engine.cancel_calls >= 1
        assert session.speaking is False

    @pytest.mark.asyncio
    async def test_rapid_responses_only_newest_speaks(self) -> None:
        engine = FakeEngine(delay=0.05)
        session = _session(engine=engine)

        alpha = asyncio.create_task(session.speak_response("Alpha one. Alpha two."))
        await asyncio.sleep(0.01)
        bravo = asyncio.create_task(session.speak_response("Bravo one. Bravo two."))
        await asyncio.sleep(0.01)
        charlie = asyncio.create_task(session.speak_response("Charlie one. Charlie two."))

        assert await asyncio.gather(alpha, bravo, charlie) == [False, False, True]
        await session.drain()

        assert engine.spoken == ["Alpha one.", "Charlie one.", "Charlie two."]
        assert engine.max_active == 1
        assert session.speaking is False

    @pytest.mark.asyncio
    async def test_recancels_after_force_stop(self) -> None:
        engine, player = FakeEngine(), FakePlayer()
        session = _session(engine=engine, player=player)
        session.force_stop()
        await session.drain()
        assert engine.cancel_calls == 4
        assert player.stop_calls == 4
        assert session.stop_requested is True

    @pytest.mark.asyncio
    async def test_recancel_skipped_for_newer_response(self) -> None:
        engine = FakeEngine()
        session = _session(engine=engine)
        session.force_stop()
        session._token = CancellationToken()
        await session.drain()
        assert engine.cancel_calls == 1

    def test_force_stop_without_loop(self) -> None:
        engine = FakeEngine()
        session = _session(engine=engine)
        session.force_stop()
        assert engine.cancel_calls == 1


# ---------------------------------------------------------------------------
# Recognizer coordination
# ---------------------------------------------------------------------------

class TestRecognizer:
    @pytest.mark.asyncio
    async def test_mute_does_not_resume(self) -> None:
        engine, recognizer = FakeEngine(), FakeRecognizer()
        session = _session(engine=engine, recognizer=recognizer)
        engine.on_speak = session.mute_ai

        assert await session.speak_response("One. Two.") is False
        await session.drain()
        assert recognizer.start_calls == 0
        assert engine.spoken == ["One."]

    @pytest.mark.asyncio
    async def test_mic_disabled_does_not_resume(self) -> None:
        recognizer = FakeRecognizer()
        session = _session(engine=FakeEngine(), recognizer=recognizer)
        session.mic_enabled = False
        await session.speak_response("Hi.")
        assert recognizer.start_calls == 0
        assert session.paused_by_tts is True

    @pytest.mark.asyncio
    async def test_idle_recognizer_untouched(self) -> None:
        recognizer = FakeRecognizer(listening=False)
        await _session(engine=FakeEngine(), recognizer=recognizer).speak_response("Hi.")
        assert (recognizer.stop_calls, recognizer.start_calls) == (0, 0)

    @pytest.mark.asyncio
    async def test_shutdown(self) -> None:
        recognizer = FakeRecognizer()
        session = _session(engine=FakeEngine(), recognizer=recognizer)
        session.shutdown()
        await session.drain()
        assert recognizer.stop_calls == 1
        assert await session.speak_response("Hi.") is False

    @pytest.mark.asyncio
    async def test_hidden_tab_suspends_until_visible(self) -> None:
        engine, recognizer = FakeEngine(), FakeRecognizer()
        session = _session(engine=engine, recognizer=recognizer)

        session.suspend()
        await session.drain()
        assert recognizer.listening is False
        assert await session.speak_response("Hi.") is False
        assert engine.spoken == []

        session.resume()
        assert recognizer.start_calls == 1
        assert await session.speak_response("Back.") is True
        assert engine.spoken == ["Back."]

    @pytest.mark.asyncio
    async def test_suspend_interrupts_speech(self) -> None:
        engine, recognizer = FakeEngine(), FakeRecognizer()
        session = _session(engine=engine, recognizer=recognizer)
        engine.on_speak = session.suspend

        assert await session.speak_response("One. Two.") is False
        await session.drain()
        assert engine.spoken == ["One."]
        assert recognizer.start_calls == 0
