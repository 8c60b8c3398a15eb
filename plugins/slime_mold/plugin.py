"""
Plugin registration

Registers the slime mold pipeline as a video source with any host that
exposes the simple registry API: registry.register(name=, pipeline_class=,
description=).
"""

from .pipeline import SlimePipeline, SlimePipelineConfig


def register_pipelines(registry):
    """Called when the host loads the plugin."""
    config = SlimePipelineConfig()
    registry.register(
        name=config.pipeline_id,
        pipeline_class=SlimePipeline,
        description=config.pipeline_description,
    )
