from .workflow import SyncWorkflow, WorkflowState

__all__ = ["SyncWorkflow", "WorkflowState"]
