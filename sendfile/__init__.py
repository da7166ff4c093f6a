"""
sendfile - send a single file to a server over TCP

A client sends one length-prefixed frame (name + file bytes) per
connection; the server accepts any number of concurrent transfers and
writes each one to disk.
"""

__version__ = '1.0.0'
