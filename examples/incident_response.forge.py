"""Incident response workflow.

Run with:
    skillforge show examples/incident_response.forge.py
    skillforge build examples/incident_response.forge.py --dry-run
"""

from skillforge.core import branch, concurrent, hydrate, leaf, sequence

name = "incident-response"
description = "Triage a production incident, gather evidence, and escalate when needed"

triage = leaf(
    {
        "name": "triage",
        "description": "Classify incidents by severity",
        "instructions": (
            "Read the alert and classify the incident as critical, major or minor. "
            "Record the affected service and the time the problem started."
        ),
    }
)

search_logs = leaf(
    {
        "name": "search-logs",
        "instructions": "Search the logs of the configured service for errors around the incident start.",
    }
)

check_metrics = leaf(
    {
        "name": "check-metrics",
        "instructions": "Compare latency and error-rate dashboards against the previous day.",
    }
)

recent_deploys = leaf(
    {
        "name": "recent-deploys",
        "instructions": "List deployments to the affected service in the last 24 hours.",
    }
)

page_oncall = leaf(
    {
        "name": "page-oncall",
        "instructions": "Page the on-call engineer with a summary of the evidence.",
    }
)

file_ticket = leaf(
    {
        "name": "file-ticket",
        "instructions": "File a ticket in the team queue with the findings.",
    }
)

service = {"service": "payments", "window": "2h"}

composition = sequence(
    triage,
    concurrent(
        hydrate(search_logs, service),
        hydrate(check_metrics, service),
        recent_deploys,
    ),
    branch(
        when="severity is critical",
        then=hydrate(page_oncall, {"rotation": "payments-primary"}),
        else_=file_ticket,
    ),
)
