"""Report memory use of processes per tmux pane."""

__version__ = "0.3.0"
