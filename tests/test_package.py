"""Basic package tests to verify installation."""


def test_package_imports() -> None:
    """Verify the main package can be imported."""
    import pipeload

    assert pipeload.__version__


def test_config_module_imports() -> None:
    """Verify config module structure is correct."""
    from pipeload.config import (
        DatabaseConfig,
        ImportSettings,
        LoadConfig,
        LoggingConfig,
        PostInstallConfig,
        SourceConfig,
        SpecificationConfig,
        TableMode,
        load_config,
    )

    assert ImportSettings is not None
    assert DatabaseConfig is not None
    assert SourceConfig is not None
    assert SpecificationConfig is not None
    assert LoadConfig is not None
    assert PostInstallConfig is not None
    assert LoggingConfig is not None
    assert TableMode is not None
    assert load_config is not None


def test_pipeline_module_imports() -> None:
    """Verify the pipeline components are exported."""
    from pipeload.conversion import RowMaterializer, TypeConverter
    from pipeload.loading import BulkLoader, SqlAlchemyBulkSink, TableManager
    from pipeload.orchestration import ImportOrchestrator, RowBuffer
    from pipeload.parsing import RecordReader
    from pipeload.reporting import SummaryReporter

    assert RecordReader is not None
    assert TypeConverter is not None
    assert RowMaterializer is not None
    assert BulkLoader is not None
    assert SqlAlchemyBulkSink is not None
    assert TableManager is not None
    assert ImportOrchestrator is not None
    assert RowBuffer is not None
    assert SummaryReporter is not None
