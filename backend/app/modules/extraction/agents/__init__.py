"""Project Intake extraction engine.

Per-document pipeline with one LLM call per document:
  Prompts:      canonical field descriptions + request builder
  Client:       provider SDK call, JSON reply location + narrowing
  Orchestrator: decode -> normalize -> LLM -> parse, sequential batches
  Merger:       first-writer-wins record with conflict map (programmatic)
"""
