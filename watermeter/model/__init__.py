from watermeter.model.counter import VolumeCounter
from watermeter.model.flow import FlowModel
from watermeter.model.meter import Meter

__all__ = ["FlowModel", "Meter", "VolumeCounter"]
