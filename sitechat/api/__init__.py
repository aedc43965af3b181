"""
HTTP API: bot management, chat and the embeddable widget.
"""
