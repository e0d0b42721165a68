"""
Deploy a static front-end build to an S3 bucket configured for website hosting.
"""

__version__ = "1.0.0"
