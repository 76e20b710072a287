"""
security/ - Access control for the Telegram bot
================================================
Whitelist and per-user rate limiting, applied as handler decorators.
"""
