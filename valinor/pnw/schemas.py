from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class _PnWModel(BaseModel):
    # l'API renvoie les ID tantôt en str, tantôt en int
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

class AllianceRef(_PnWModel):
    id: str
    name: str = ""

class WarSide(_PnWModel):
    id: str
    nation_name: str
    alliance: Optional[AllianceRef] = None

class War(_PnWModel):
    id: str
    date: str
    turns_left: int = 0
    attacker: WarSide
    defender: WarSide

    def is_defended_by(self, alliance_id: int | str) -> bool:
        """True si la nation attaquée appartient à l'alliance surveillée."""
        return self.defender.alliance is not None and self.defender.alliance.id == str(alliance_id)

class Nation(_PnWModel):
    id: str
    nation_name: str
    leader_name: str = ""
    alliance_id: Optional[str] = None
    alliance_position: Optional[str] = None
    score: float = 0
    num_cities: int = 0
    wars: List[War] = Field(default_factory=list)

class Alliance(_PnWModel):
    id: str
    name: str
    acronym: str = ""
    score: float = 0
    nations: List[Nation] = Field(default_factory=list)
