"""
Ingestion pipelines.

- material_ingestion: Model-driven ingestion of one study material
- utils: JSON recovery from model responses

Usage:
    from studykit.pipelines.material_ingestion import MaterialIngestionPipeline
"""
