"""Daemon lifecycle control.

Import from specific modules:
    from warden.daemon.base import Daemon
    from warden.daemon.controller import Controller, daemonize
    from warden.daemon.process_file import ProcessFile
"""
