"""
AI-assisted CV enhancement (Gemini or Anthropic backend).
"""

from .enhance import CvEnhancer, EnhancementResult, detect_locale, fallback_enhance

__all__ = ["CvEnhancer", "EnhancementResult", "detect_locale", "fallback_enhance"]
