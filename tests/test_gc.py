"""Tests for the compaction stage."""

import gtp_gc

COMPACT = ['git reflog expire --expire=now --all',
           'git gc --prune=now --aggressive']


def test_compact_expires_reflog_before_gc(recorder):
    gtp_gc.compact('/w/scratch.git')
    assert recorder.calls == [(cmd, '/w/scratch.git') for cmd in COMPACT]


def test_compact_twice_repeats_the_same_work(recorder):
    gtp_gc.compact('/w/scratch.git')
    gtp_gc.compact('/w/scratch.git')
    assert recorder.commands == COMPACT + COMPACT
