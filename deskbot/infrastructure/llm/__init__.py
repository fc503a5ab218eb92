from .completion_service import CompletionService
from .prompts import build_prompt

__all__ = ["CompletionService", "build_prompt"]
