"""Feature1: dated content announcements with auto-numbered codes."""
