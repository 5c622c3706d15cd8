class SinkholeDashboardError(Exception):
    """Base Exception Class"""
    pass
class DatasetLoadError(SinkholeDashboardError):
    """Error class for when theres an issue reading or fetching a static dataset"""
    pass
class DatasetSchemaError(DatasetLoadError):
    """Error for a dataset that is missing required columns"""
    pass
class TopologyDecodeError(DatasetLoadError):
    """Error for a boundary file that cannot be read as TopoJSON"""
    pass
class ExportFormatError(SinkholeDashboardError):
    """Unsupported export format"""
    pass
class ConfigError(SinkholeDashboardError):
    """Config Error"""
    pass
