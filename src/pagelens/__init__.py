"""pagelens -- Browser session capture with inline terminal graphics.

This package drives a browser page on behalf of a remote controller (an
agent or a script), records what the page does (console output, network
traffic), keeps per-workspace cookies and storage, and shows screenshots
directly in the operator's terminal through whichever image protocol the
terminal speaks.
"""

__version__ = "0.1.0"
