"""Core data model shared by the mail, protocol, session and dispatch layers."""
