from __future__ import annotations

import logging

from pfharness.api import create_app
from pfharness.config import Settings, load_settings
from pfharness.engine.base import JobEngine

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> JobEngine:
	"""Create the job engine selected by the settings."""
	if settings.engine == "kubernetes":
		from pfharness.engine.kubernetes import KubernetesJobEngine
		return KubernetesJobEngine(
			namespace=settings.namespace,
			image=settings.worker_image,
			step_duration_ms=settings.step_duration_ms,
		)

	from pfharness.engine.local import LocalJobEngine
	return LocalJobEngine(
		step_duration_ms=settings.step_duration_ms,
		workers=settings.local_workers,
		retention_s=settings.local_retention_s,
	)


def build_app():
	"""Build the Flask app with settings from the environment."""
	settings = load_settings()
	logging.basicConfig(
		level=settings.log_level.upper(),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)
	engine = build_engine(settings)
	logger.info(f"Using {engine.name} engine (namespace={settings.namespace})")
	return create_app(engine, settings)


# Build app at module level (for gunicorn)
app = build_app()


if __name__ == "__main__":
	app.run(host="0.0.0.0", port=app.config['pf_settings'].port)
