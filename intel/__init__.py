"""
External intelligence sources: the Gemini model service, public video
metadata and structured email intake.
"""
