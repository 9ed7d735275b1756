"""
Tests for the reader/writer lock.
"""

import threading
import time

import pytest

from core.storage.locking import ReadWriteLock


def test_readers_share_the_lock():
    """Test that several readers hold the lock at once."""
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=5)
    
    def reader():
        with lock.read():
            # Only passes if all three readers hold the lock at once
            inside.wait()
    
    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    
    assert not inside.broken
    assert lock.readers == 0


def test_writer_excludes_readers():
    """Test that readers wait while a writer holds the lock."""
    lock = ReadWriteLock()
    events = []
    writer_holding = threading.Event()
    
    def writer():
        with lock.write():
            writer_holding.set()
            time.sleep(0.1)
            events.append("writer-done")
    
    def reader():
        writer_holding.wait(timeout=5)
        with lock.read():
            events.append("reader")
    
    threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    
    assert events == ["writer-done", "reader"]


def test_writers_are_serialized():
    """Test that two writers never hold the lock together."""
    lock = ReadWriteLock()
    counter = {"value": 0}
    
    def increment():
        for _ in range(200):
            with lock.write():
                current = counter["value"]
                time.sleep(0)
                counter["value"] = current + 1
    
    threads = [threading.Thread(target=increment) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    
    assert counter["value"] == 800


def test_waiting_writer_blocks_new_readers():
    """Test that a queued writer goes ahead of readers arriving later."""
    lock = ReadWriteLock()
    lock.acquire_read()
    
    writer_done = threading.Event()
    
    def writer():
        with lock.write():
            writer_done.set()
    
    t = threading.Thread(target=writer)
    t.start()
    
    # Wait until the writer is queued behind the held read lock
    deadline = time.monotonic() + 5
    while lock._waiting_writers == 0 and time.monotonic() < deadline:
        time.sleep(0.01)
    
    second_reader = threading.Event()
    
    def late_reader():
        with lock.read():
            second_reader.set()
    
    r = threading.Thread(target=late_reader)
    r.start()
    
    time.sleep(0.05)
    assert not second_reader.is_set()
    assert not writer_done.is_set()
    
    lock.release_read()
    t.join(timeout=5)
    r.join(timeout=5)
    
    assert writer_done.is_set()
    assert second_reader.is_set()


def test_release_without_acquire_raises():
    """Test that releasing an unheld lock raises."""
    lock = ReadWriteLock()
    
    with pytest.raises(RuntimeError):
        lock.release_read()
    with pytest.raises(RuntimeError):
        lock.release_write()
