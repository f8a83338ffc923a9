from __future__ import annotations

from prmentor_core.providers.base import BaseReviewer


class AnthropicReviewer(BaseReviewer):
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, model_name: str | None = None):
        super().__init__(model_name)
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'prmentor[anthropic]'"
            )
        self.client = Anthropic(api_key=api_key)

    def _call_api(self, prompt: str) -> str:
        # anthropic is optional; __init__ already validated it is installed.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
