from .head_defaulter import ROOT_OPERATION, HeadTraceDefaulter

__all__ = ["HeadTraceDefaulter", "ROOT_OPERATION"]
