"""
Viva backend: VAPI webhook ingestion and transcript-to-evaluation pipeline.
"""
