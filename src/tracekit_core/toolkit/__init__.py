from tracekit_core.toolkit.client import ToolkitClient as ToolkitClient
