from .session_orchestrator import OrchestratorState, SessionOrchestrator

__all__ = ['OrchestratorState', 'SessionOrchestrator']
