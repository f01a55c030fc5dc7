#!/usr/bin/env python3
"""
Tracklist Sync

Safe re-run script: rows that already have a video link or the playlist
marker are left untouched.
"""

from tracklist_sync.sync_service import main


if __name__ == '__main__':
    main()
