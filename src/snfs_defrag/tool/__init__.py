"""Invocation of the snfsdefrag utility and parsing of its output."""

from snfs_defrag.tool.client import SnfsDefrag
from snfs_defrag.tool.invoker import CommandInvoker, ExecutionResult
from snfs_defrag.tool.parsers import CandidateRecord, ExtentRecord

__all__ = [
    "CandidateRecord",
    "CommandInvoker",
    "ExecutionResult",
    "ExtentRecord",
    "SnfsDefrag",
]
