"""
Priority/fairness load harness.

Modules:
- model: run configs, plan entries, status records and summaries
- classification: priority / fairness band assignment per job
- timing: synchronized start-time estimation
- planner: ordered (classification, delay) plan for a run
- launcher: sequential submission of a plan to an engine
- aggregator: per-classification progress summaries
- engine: local and Kubernetes job-execution engines
- api: REST API surface for starting runs and polling their status
"""
