"""A small kernel's storage stack (disk, buffer cache, log, inodes, files, pipes), console, keyboard and MP-table models, and simple tools."""

__version__ = "0.1.0"