"""UnityDesk: citizen grievance reporting with AI triage."""

__version__ = "0.1.0"
