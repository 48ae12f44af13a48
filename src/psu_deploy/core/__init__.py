"""Settings, credentials, logging and exceptions shared by every command."""
