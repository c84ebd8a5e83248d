"""Dependency resolution (bounded forward relaxation).

Resolution is deliberately forward-only: dependencies push dates later and
never pull them earlier, and there is no backward/slack pass. The critical
flag on activities is caller-owned and is not derived here.
"""
