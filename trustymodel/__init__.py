"""Executable model of the Trusty IPC interface: types, handle tables, system calls and an IPC service, driven by scriptable nondeterminism."""

__version__ = "0.1.0"