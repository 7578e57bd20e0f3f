from prreview.services.llm.anthropic import AnthropicReviewer

__all__ = ["AnthropicReviewer"]
