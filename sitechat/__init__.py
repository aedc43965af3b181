"""
sitechat: site-specific retrieval-augmented chatbots.

Crawl a website, chunk and index its pages for hybrid (lexical + semantic)
retrieval, and answer questions about it through a small HTTP API.
"""

__version__ = "0.1.0"
