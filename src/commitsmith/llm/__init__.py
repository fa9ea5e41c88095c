"""
Commit message generation through a text-generation service.

:class:`CommitMessageGenerator` is the entry point; the other modules are
its collaborators and can be injected for testing.
"""

from .cache import SuggestionCache  # noqa: F401
from .commit_message_generator import CommitMessageGenerator  # noqa: F401
from .ollama_client import OllamaClient  # noqa: F401
from .prompt_builder import PromptBuilder  # noqa: F401
from .response_parser import ResponseParser  # noqa: F401
