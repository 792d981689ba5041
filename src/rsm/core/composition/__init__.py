from .state_machine import render_state_machine_doc

__all__ = ["render_state_machine_doc"]
