"""
Kubernetes operator reconciling Head → ChildA → Deployment with one
distributed trace per Head.
"""

__version__ = "0.1.0"
