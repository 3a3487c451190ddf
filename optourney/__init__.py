"""Asynchronous tournament web server with one websocket per user and a message bus."""

__version__ = "0.1.0"