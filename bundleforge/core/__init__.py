"""Core subsystems: tool capabilities, locator, rewriter, verifier, orchestrator."""
