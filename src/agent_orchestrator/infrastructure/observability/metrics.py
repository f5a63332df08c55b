"""
Prometheus metrics.

Add new metrics following this pattern: module-level collectors with a
small, fixed label set.
"""
from prometheus_client import Counter, Histogram


# Turn metrics
TURNS_TOTAL = Counter(
    "agent_turns_total",
    "Total agent turns",
    ["agent_type", "outcome"],
)

TURN_DURATION_SECONDS = Histogram(
    "agent_turn_duration_seconds",
    "Agent turn duration in seconds",
    ["agent_type"],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

MODEL_ROUND_TRIPS_TOTAL = Counter(
    "agent_model_round_trips_total",
    "Total language model round-trips",
    ["agent_type"],
)

TURNS_TRUNCATED_TOTAL = Counter(
    "agent_turns_truncated_total",
    "Turns stopped by the iteration cap",
    ["agent_type"],
)

AGENT_TOKENS_USED_TOTAL = Counter(
    "agent_tokens_used_total",
    "Total tokens used by agents",
    ["agent_type", "token_type"],
)

# Tool metrics
TOOL_EXECUTIONS = Counter(
    "tool_executions_total",
    "Total tool executions",
    ["tool_name", "status"],
)

TOOL_EXECUTION_DURATION_SECONDS = Histogram(
    "tool_execution_duration_seconds",
    "Tool execution duration in seconds",
    ["tool_name"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 60.0],
)

# Job metrics
JOB_TRANSITIONS_TOTAL = Counter(
    "agent_job_transitions_total",
    "Job status transitions",
    ["job_type", "status"],
)
