"""agent-mux: attention tracking for coding agents running in tmux."""

__version__ = "0.4.0"
