"""
Utilities package for BotTools.

Operator entry points (run with `python -m BotTools.utilities.<name>`):
- Backfilling missing image URLs from the Telegram archive channel
- Fetching a page as plain text
"""

__all__ = []
