"""HTTP tool endpoint module for pagelens.

Serves the browser tools over HTTP so an agent or script outside the
process can navigate, interact, capture screenshots, and pull console
and network logs.
"""
