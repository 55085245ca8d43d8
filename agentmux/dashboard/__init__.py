from .app import AgentMuxApp, cmd_dashboard

__all__ = ["AgentMuxApp", "cmd_dashboard"]
