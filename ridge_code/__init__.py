"""
Ridge-Code

An interactive client that streams model output, mines the AIDIS commands the
model embeds in it, and forwards them to the AIDIS knowledge/task service.
"""

# Logging is configured at app entry point via ridge_code/logging_utils.py
# No need to configure logging here.

__version__ = "0.1.0"
__author__ = "Ridge-Code"
__description__ = "Response-to-action pipeline between an LLM and the AIDIS service"
