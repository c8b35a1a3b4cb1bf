from watermeter.control.outage import OutageParams, OutageStateMachine
from watermeter.control.simulation import MeterSimulation

__all__ = ["MeterSimulation", "OutageParams", "OutageStateMachine"]
