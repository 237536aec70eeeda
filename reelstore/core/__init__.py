"""
Core upload logic.

Framework-agnostic: nothing in here imports FastAPI, boto3 or Snowflake.
Infrastructure adapters implement the Protocols defined in
``core.pipeline.orchestrator``.
"""
