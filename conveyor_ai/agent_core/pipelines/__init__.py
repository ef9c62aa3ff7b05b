from .catalog import Pipeline, PipelineCatalog, load_pipelines_file, parse_pipelines
from .orchestrator import StaticOrchestrator

__all__ = ["Pipeline", "PipelineCatalog", "StaticOrchestrator", "load_pipelines_file", "parse_pipelines"]
