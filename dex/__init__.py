"""
Two-venue DEX spread checking: quotes, evaluation and recording.
"""
