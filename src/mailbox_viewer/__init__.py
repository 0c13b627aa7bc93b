"""Read-only web and terminal viewer for a single IMAP mailbox."""

__version__ = "0.1.0"
