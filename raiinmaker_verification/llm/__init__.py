"""LLM-backed content pre-check."""

from raiinmaker_verification.llm.pre_verification import (
    ContentPreVerifier,
    PreVerificationResult,
)

__all__ = ["ContentPreVerifier", "PreVerificationResult"]
