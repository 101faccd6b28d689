"""
Speech output pipeline for spoken AI responses.

Flow:  restart-if-speaking -> pause recognizer -> try neural/lock mode ->
       sequential phrases with pauses -> resume recognizer.

Cancellation is cooperative: every suspension point checks the session's
CancellationToken before continuing. The synthesis mode is decided once
per session and never switches afterwards.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, List, Optional, Set

from core_intelligence.speech.text_prep import build_speech_queue
from domain.models import SpeechMode, SpeechQueueItem, SynthesizedAudio
from ports.speech import (
    AudioPlayerPort,
    NeuralSpeechPort,
    SpeechEnginePort,
    SpeechRecognizerPort,
)
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import SpeechSynthesisError
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.SPEECH)

QUOTA_NOTICE = "AI voice quota exceeded. Responses will be shown as text until it resets."
TEXT_ONLY_NOTICE = "Speech output is unavailable. AI responses are shown as text."


class SpeechCancelled(Exception):
    """Raised inside the sequencing loop when the token is cancelled."""


class CancellationToken:
    """One-shot cancel flag shared by a single spoken response."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SpeechCancelled()


class SpeechSession:
    """Speech output state for one call session."""

    def __init__(
        self,
        neural: Optional[NeuralSpeechPort] = None,
        engine: Optional[SpeechEnginePort] = None,
        player: Optional[AudioPlayerPort] = None,
        recognizer: Optional[SpeechRecognizerPort] = None,
        preferred_voice: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._neural = neural
        self._engine = engine
        self._player = player
        self._recognizer = recognizer
        self._preferred_voice = preferred_voice
        self._sleep = sleep
        self._rng = rng or random.Random()

        self.mode = SpeechMode.UNSET
        self.voice: Optional[str] = None
        self.speaking = False
        self.stop_requested = False
        self.shutting_down = False
        self.paused_by_tts = False
        self.mic_enabled = True
        self.ai_listening_disabled = False
        self.suspended = False
        self.notices: List[str] = []

        self._token = CancellationToken()
        self._recancel_tasks: Set[asyncio.Task] = set()
        self._active_runs = 0
        self._resume_on_visible = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def speak_response(self, text: str) -> bool:
        """Speak ``text``; the newest response always wins.

        A response arriving while an earlier one is still speaking (or still
        unwinding from a stop) claims the session first, then waits for the
        earlier run to finish. If an even newer response claims the session
        during that wait, this one gives up without speaking.

        Returns:
            True when the whole queue was processed, False when it was
            cancelled, superseded or no synthesis was available (text-only).
        """
        if self._halted() or not text or not text.strip():
            return False

        token = CancellationToken()
        if self.speaking or self._active_runs:
            logger.info("speech_restart")
            self.force_stop()
            self._token = token
            await self._sleep(Defaults.RESTART_DELAY_SECONDS)
            while self._active_runs and self._token is token and not self._halted():
                await self._sleep(Defaults.RESTART_DELAY_SECONDS)
            if self._halted() or self._token is not token:
                logger.info("speech_superseded")
                return False
        else:
            self._token = token

        self.stop_requested = False
        self.speaking = True
        self._active_runs += 1
        self._pause_recognizer()

        completed = False
        try:
            completed = await self._run(text, token)
        except SpeechCancelled:
            logger.info("speech_cancelled", mode=self.mode.value)
        finally:
            self._active_runs -= 1
            if self._token is token:
                self.speaking = False
                self._resume_recognizer()
        return completed

    def force_stop(self) -> None:
        """Cancel now and again at short delays to catch late utterances."""
        self.stop_requested = True
        token = self._token
        token.cancel()
        self._cancel_outputs()
        self.speaking = False
        self._schedule_recancels(token)

    def mute_ai(self) -> None:
        """Stop speaking; the recognizer is not resumed for this response."""
        self.paused_by_tts = False
        self.force_stop()

    def suspend(self) -> None:
        """Hidden tab: stop output and listening until ``resume()``."""
        if self.suspended or self.shutting_down:
            return
        self.suspended = True
        self.paused_by_tts = False
        self.force_stop()
        self._resume_on_visible = self._recognizer is not None and self._recognizer.listening
        if self._resume_on_visible:
            self._recognizer.stop()
        logger.info("speech_session_suspended")

    def resume(self) -> None:
        """Tab visible again: accept responses and restore listening."""
        if not self.suspended or self.shutting_down:
            return
        self.suspended = False
        if (self._resume_on_visible and self.mic_enabled
                and not self.ai_listening_disabled and self._recognizer is not None):
            self._recognizer.start()
        self._resume_on_visible = False
        logger.info("speech_session_resumed")

    def shutdown(self) -> None:
        """Leave / unload: stop everything for good."""
        self.shutting_down = True
        self.paused_by_tts = False
        self.force_stop()
        if self._recognizer is not None and self._recognizer.listening:
            self._recognizer.stop()
        logger.info("speech_session_shutdown")

    async def drain(self) -> None:
        """Wait for pending re-cancel timers."""
        if self._recancel_tasks:
            await asyncio.gather(*list(self._recancel_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Sequencing
    # ------------------------------------------------------------------

    async def _run(self, text: str, token: CancellationToken) -> bool:
        if self.mode == SpeechMode.UNSET:
            queue = build_speech_queue(text, neural=True, rng=self._rng)
            if not queue:
                return True
            first_audio = await self._lock_mode(queue[0], token)
            if self.mode == SpeechMode.NEURAL:
                await self._play_audio(first_audio, token)
                await self._pause(queue[0], token)
                return await self._run_neural(queue[1:], token)
        elif self.mode == SpeechMode.NEURAL:
            return await self._run_neural(build_speech_queue(text, neural=True, rng=self._rng), token)

        return await self._run_browser(build_speech_queue(text, rng=self._rng), token)

    async def _lock_mode(self, item: SpeechQueueItem, token: CancellationToken) -> Optional[SynthesizedAudio]:
        """Try the neural voice once and lock the session mode."""
        audio = None
        if self._neural is not None:
            audio = await self._synthesize(item, token)
        self.mode = SpeechMode.NEURAL if audio is not None and audio.content else SpeechMode.BROWSER
        logger.info("speech_mode_locked", mode=self.mode.value)
        return audio

    async def _run_neural(self, queue: List[SpeechQueueItem], token: CancellationToken) -> bool:
        for item in queue:
            token.raise_if_cancelled()
            audio = await self._synthesize(item, token)
            if audio is not None:
                await self._play_audio(audio, token)
            await self._pause(item, token)
        return True

    async def _run_browser(self, queue: List[SpeechQueueItem], token: CancellationToken) -> bool:
        if self._engine is None or not self._engine.available:
            self._notice(TEXT_ONLY_NOTICE)
            logger.warning("speech_text_only")
            return False

        voice = self._select_voice()
        for item in queue:
            token.raise_if_cancelled()
            try:
                await self._engine.speak(item.text, voice, item.rate, item.pitch, item.volume)
            except Exception as e:
                logger.warning("browser_phrase_failed", error=str(e))
            await self._pause(item, token)
        return True

    async def _synthesize(self, item: SpeechQueueItem, token: CancellationToken) -> Optional[SynthesizedAudio]:
        token.raise_if_cancelled()
        try:
            audio = await self._neural.synthesize(item.text)
        except SpeechSynthesisError as e:
            if e.quota_exceeded:
                self._notice(QUOTA_NOTICE)
            logger.warning("neural_phrase_skipped", status=e.status_code, quota_exceeded=e.quota_exceeded)
            audio = None
        except Exception as e:
            logger.warning("neural_phrase_skipped", error=str(e))
            audio = None
        token.raise_if_cancelled()
        return audio

    async def _play_audio(self, audio: Optional[SynthesizedAudio], token: CancellationToken) -> None:
        if audio is None or self._player is None:
            return
        token.raise_if_cancelled()
        try:
            await self._player.play(audio)
        except Exception as e:
            logger.warning("audio_playback_failed", error=str(e))
        token.raise_if_cancelled()

    async def _pause(self, item: SpeechQueueItem, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        await self._sleep(item.pause_ms / 1000)
        token.raise_if_cancelled()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _select_voice(self) -> Optional[str]:
        """Pick a voice once per session and keep it."""
        if self.voice is None:
            voices = self._engine.voices() or []
            if self._preferred_voice in voices:
                self.voice = self._preferred_voice
            elif voices:
                self.voice = voices[0]
        return self.voice

    def _pause_recognizer(self) -> None:
        if self._recognizer is not None and self._recognizer.listening:
            self._recognizer.stop()
            self.paused_by_tts = True

    def _resume_recognizer(self) -> None:
        if not self.paused_by_tts:
            return
        if self.stop_requested or self._halted():
            return
        if not self.mic_enabled or self.ai_listening_disabled or self._recognizer is None:
            return
        self.paused_by_tts = False
        self._recognizer.start()
        logger.debug("recognizer_resumed")

    def _cancel_outputs(self) -> None:
        if self._player is not None:
            self._player.stop()
        if self._engine is not None:
            self._engine.cancel()

    def _schedule_recancels(self, token: CancellationToken) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._recancel(token))
        self._recancel_tasks.add(task)
        task.add_done_callback(self._recancel_tasks.discard)

    async def _recancel(self, token: CancellationToken) -> None:
        elapsed = 0.0
        for delay in Defaults.RECANCEL_DELAYS_SECONDS:
            await self._sleep(delay - elapsed)
            elapsed = delay
            if self._token is not token:
                # A newer response owns the outputs now
                return
            self._cancel_outputs()

    def _halted(self) -> bool:
        return self.shutting_down or self.suspended

    def _notice(self, message: str) -> None:
        if message not in self.notices:
            self.notices.append(message)
