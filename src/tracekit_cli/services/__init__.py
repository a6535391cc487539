from tracekit_cli.services.demo_service import (
    DemoTraceResult as DemoTraceResult,
    record_demo_trace as record_demo_trace,
)
from tracekit_cli.services.env_service import (
    EnvUpdate as EnvUpdate,
    has_api_key as has_api_key,
    update_env_file as update_env_file,
)
