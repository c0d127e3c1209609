"""FokusHub360 backend: DB models, matching pipelines, scheduled jobs, API.

The matching engine scores participants with an LLM and selects a
diversified, quality-filtered subset per campaign (see ``hub.selection``).
"""
