"""Terminal panes for agents."""
from mctl.tmux.protocol import PaneProvider

__all__ = ["PaneProvider"]
