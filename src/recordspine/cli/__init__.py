"""
record-spine command-line interface.

Usage::

    recordspine migrate run --database app.db --path database/migrations
    recordspine migrate status
"""
