"""
ReelReview - Video Review Service
=================================

Backend for a video review workflow:
1. Submitters upload videos (Google Drive links or temporary Firebase storage)
2. Reviewers leave timestamped comments and annotations
3. Admins manage users and approve/archive submissions
"""

__version__ = "1.0.0"
