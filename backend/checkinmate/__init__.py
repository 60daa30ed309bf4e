"""CheckinMate places API."""
