"""
File Relay Domain

Watches a directory for new PNG files and posts them to a Discord channel:
- Watchers → report files once their size has settled
- Verifier → checks the destination channel after login
- Uploader → sends each file as an attachment
"""

__all__ = ["orchestrator", "uploader", "verifier", "watchers"]
