"""Service layer: candidate retrieval, preference inference and feed orchestration."""
