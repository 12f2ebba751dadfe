"""Default content-policy checklist used by the automated pre-check."""

DEFAULT_CHECKLIST: list[str] = [
    "Content does not contain hate speech or discriminatory language",
    "Content is appropriate for the target audience",
    "Content aligns with the agent's persona and purpose",
    "Content does not contain unsafe advice or recommendations",
    "Content follows platform guidelines for the intended social network",
    "Content is free from profanity or explicit material",
]

__all__ = ["DEFAULT_CHECKLIST"]
