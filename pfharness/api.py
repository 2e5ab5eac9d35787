from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, jsonify, request

from pfharness.aggregator import ResultAggregator
from pfharness.config import Settings
from pfharness.engine.base import JobEngine
from pfharness.errors import ConfigError, EngineError, LaunchError
from pfharness.launcher import JobLauncher
from pfharness.model import Mode, RunConfig

logger = logging.getLogger(__name__)


def create_app(engine: JobEngine, settings: Optional[Settings] = None, launcher: Optional[JobLauncher] = None) -> Flask:
	app = Flask(__name__)
	settings = settings or Settings()
	app.config['pf_engine'] = engine
	app.config['pf_settings'] = settings

	launcher = launcher or JobLauncher(engine, settings)
	aggregator = ResultAggregator()

	@app.post("/start-workflows")
	def start_workflows() -> Any:
		payload = None
		if request.get_data():
			payload = request.get_json(silent=True)
			if payload is None and request.get_data().strip() != b"null":
				return jsonify({"error": "body must be a JSON run config"}), 400
		try:
			config = RunConfig.from_dict(payload)
		except ConfigError as e:
			return jsonify({"error": str(e)}), 400

		try:
			report = launcher.launch(config)
		except LaunchError as e:
			logger.error(str(e))
			return jsonify({"error": str(e)}), 502
		return "Done", 200, {
			"Content-Type": "text/plain; charset=utf-8",
			"X-Jobs-Submitted": str(report.submitted),
			"X-Jobs-Failed": str(report.failed),
		}

	def run_status(mode: Mode) -> Any:
		run_prefix = request.args.get("runPrefix", "")
		if not run_prefix:
			return jsonify({"error": "missing 'runPrefix' query parameter"}), 400
		try:
			records = engine.list_status(run_prefix)
		except EngineError as e:
			logger.error(f"Status lookup for {run_prefix} failed: {e}")
			return jsonify({"error": str(e)}), 502
		results = aggregator.aggregate(mode, records)
		logger.debug(f"There are [{results.total_jobs}] jobs in run {run_prefix}")
		return jsonify(results.to_dict())

	@app.get("/run-status")
	def run_status_priority() -> Any:
		return run_status(Mode.PRIORITY)

	@app.get("/run-status-fairness")
	def run_status_fairness() -> Any:
		return run_status(Mode.FAIRNESS)

	@app.get("/health")
	def health() -> Any:
		return jsonify({"status": "ok", "engine": engine.name})

	return app
