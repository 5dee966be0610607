# WORKFLOW: Scenario processors turning an analysed source package into scenario documents.
# Used by: Transformation service
# Modules include:
# 1. base.py - Shared rules (authority check, goal id, dates, metadata block, geo termination)
# 2. publication.py - Publication and validation deliveries (besluit.xml + IO documents)
# 3. withdrawal.py - Withdrawal deliveries (intrekkingsbesluit.xml + terminated OW files)
# 4. handover.py - Hand-over deliveries (proefversiebesluit.xml + consolidaties.xml)
#
# Registry flow: Scenario -> get_processor() -> processor.process(archive, analysis, validation)

from typing import Optional

from core.clock import Clock
from core.config import Settings, settings
from pipeline.models import Scenario
from scenarios.base import ScenarioProcessor
from scenarios.handover import HandoverProcessor
from scenarios.publication import PublicationProcessor
from scenarios.withdrawal import WithdrawalProcessor

PROCESSORS = {
    Scenario.PUBLICATION: PublicationProcessor,
    Scenario.WITHDRAWAL: WithdrawalProcessor,
    Scenario.HANDOVER: HandoverProcessor,
}


def get_processor(scenario: Scenario, clock: Optional[Clock] = None,
                  config: Settings = settings) -> ScenarioProcessor:
    return PROCESSORS[Scenario(scenario)](clock=clock, config=config)
