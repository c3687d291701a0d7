"""Document pipeline: file analysis, stage state, prompts and orchestration."""
