"""
Standup summarization service for standup-cli.

Produces a StandupSummary from an aggregation result, using the local Ollama
model when it is enabled and reachable and the heuristic summary otherwise.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from journal import summarize as llm
from standup.config import StandupConfig
from standup.types import AggregationResult, ParsedStandup, RetroSummary, StandupSummary

logger = logging.getLogger(__name__)


class StandupSummarizer:
    """
    Service for turning aggregated commits into standup content.

    AI summarization is opt-in; any failure falls back to the heuristic
    summary so a standup can always be produced.
    """

    def __init__(self, config: StandupConfig, client: Optional[Any] = None):
        """
        Initialize the summarizer.

        Args:
            config: Configuration instance
            client: Ollama client to use. If None, one is created from config on demand.
        """
        self.config = config
        self._client = client
        self._available: Optional[bool] = None
        logger.debug(f"Ollama enabled in config: {self.config.ollama.enabled}")
        logger.debug(f"Ollama model: {self.config.ollama.model}")

    @property
    def client(self):
        if self._client is None:
            self._client = llm.get_ollama_client(self.config.ollama.endpoint, self.config.ollama.timeout)
        return self._client

    def is_available(self) -> bool:
        """
        Check if AI summarization is available.

        Returns:
            True if Ollama is enabled and reachable, False otherwise
        """
        if self._available is not None:
            return self._available

        if not self.config.ollama.enabled:
            logger.info("AI summarization disabled in config")
            self._available = False
            return False

        try:
            llm.list_models(self.client)
            logger.info("Ollama is available")
            self._available = True
        except Exception as e:
            logger.warning(f"Ollama is not available: {e}")
            self._available = False
        return self._available

    def summarize(
        self,
        result: AggregationResult,
        now: Optional[datetime] = None,
        use_ai: bool = True,
    ) -> StandupSummary:
        """
        Summarize an aggregation result.

        Args:
            result: Aggregated commits
            now: Reference time for mood and context (defaults to now)
            use_ai: Allow the LLM to be used when available

        Returns:
            StandupSummary; used_ai tells which generator produced it
        """
        groups = list(result.groups)

        if use_ai and self.is_available():
            options = {
                "temperature": self.config.ollama.temperature,
                "num_predict": self.config.ollama.num_predict,
            }
            try:
                summary = llm.generate_ai_summary(
                    self.client,
                    self.config.ollama.model,
                    groups,
                    result.total_commits,
                    now=now,
                    options=options,
                )
                logger.info("Generated AI standup summary")
                return summary
            except llm.SummarizationError as e:
                logger.warning(f"AI summary failed, using simple summary: {e}")

        summary = llm.generate_simple_summary(groups, result.total_commits, now=now)
        logger.info("Generated simple standup summary")
        return summary

    def summarize_week(self, standups: Sequence[ParsedStandup], use_ai: bool = True) -> RetroSummary:
        """Weekly retro from parsed standups; AI when available, heuristic otherwise."""
        if use_ai and standups and self.is_available():
            options = {
                "temperature": self.config.ollama.temperature,
                "num_predict": max(self.config.ollama.num_predict, llm.RETRO_NUM_PREDICT),
            }
            try:
                retro = llm.generate_ai_retro(self.client, self.config.ollama.model, standups, options=options)
                logger.info("Generated AI weekly retro")
                return retro
            except llm.SummarizationError as e:
                logger.warning(f"AI retro failed, using simple retro: {e}")

        logger.info("Generated simple weekly retro")
        return llm.generate_simple_retro(standups)

    def test_connection(self) -> Dict[str, Any]:
        """
        Test the Ollama connection and return status information.

        Returns:
            Dictionary with:
                - available (bool): Whether the server answered
                - models (list): List of available model names
                - has_model (bool): Whether the configured model is pulled
                - error (str|None): Error message if unavailable
        """
        if not self.config.ollama.enabled:
            return {
                "available": False,
                "models": [],
                "has_model": False,
                "error": "AI summaries disabled in configuration",
            }

        try:
            models: List[str] = llm.list_models(self.client)
        except Exception as e:
            logger.error(f"Ollama connection test failed: {e}")
            return {"available": False, "models": [], "has_model": False, "error": str(e)}

        wanted = self.config.ollama.model.lower()
        has_model = any(m.lower() == wanted or m.lower().startswith(wanted + ":") for m in models)
        logger.info(f"Ollama connection successful, {len(models)} models available")
        return {"available": True, "models": models, "has_model": has_model, "error": None}
