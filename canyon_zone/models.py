"""
Domain Models
=============

Landmarks, landmark points and the user-facing mode.

Design:
- LandmarkPoint / Structure carry static shape plus a few dynamic flags
- Only the visit ledger mutates dynamic fields
- to_dict/from_dict for persistence (fail-fast ValueError on bad data)
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from canyon_zone.geometry.shapes import Coordinate

# Landmark reference used by path points that belong to no structure
NON_LANDMARK = -1

# visit_order value for structures never visited
NEVER_VISITED = -1


class Mode(str, Enum):
    """How the user experiences the canyon."""

    INITIAL = "initial"
    VIRTUAL_TOUR = "virtual_tour"
    ADVENTURE = "adventure"


@dataclass(frozen=True)
class LandmarkPoint:
    """
    Surveyed point on the map.

    Attributes:
        number: Point id (stable across dataset versions)
        coordinate: Geographic position
        pixel: Opaque (x, y) position on the illustrated map
        structure: Structure number, or NON_LANDMARK for path points
        visited: Whether the owning structure has been visited
    """

    number: int
    coordinate: Coordinate
    pixel: Tuple[float, float] = (0.0, 0.0)
    structure: int = NON_LANDMARK
    visited: bool = False

    @property
    def is_landmark(self) -> bool:
        """True unless this is a path point."""
        return self.structure != NON_LANDMARK

    def with_visited(self, visited: bool) -> 'LandmarkPoint':
        """Copy with the visited flag replaced."""
        return replace(self, visited=visited)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'number': self.number,
            'latitude': self.coordinate.latitude,
            'longitude': self.coordinate.longitude,
            'pixel': [self.pixel[0], self.pixel[1]],
            'structure': self.structure,
            'visited': self.visited,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LandmarkPoint':
        """
        Deserialize from dict.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            pixel = data.get('pixel') or (0.0, 0.0)
            return cls(
                number=int(data['number']),
                coordinate=Coordinate(float(data['latitude']), float(data['longitude'])),
                pixel=(float(pixel[0]), float(pixel[1])),
                structure=int(data.get('structure', NON_LANDMARK)),
                visited=bool(data.get('visited', False)),
            )
        except KeyError as e:
            raise ValueError(f"Missing required LandmarkPoint field: {e}")
        except (TypeError, ValueError, IndexError) as e:
            raise ValueError(f"Invalid LandmarkPoint data: {e}")


@dataclass
class Structure:
    """
    A landmark in the canyon.

    Static fields come from the bundled dataset. visited/opened/liked and
    visit_order are the user's progress and are owned by the visit ledger.
    """

    number: int
    title: str
    year: str = ""
    advisors: List[str] = field(default_factory=list)
    builders: List[str] = field(default_factory=list)
    description: str = ""
    fun_fact: Optional[str] = None
    images: List[str] = field(default_factory=list)
    visited: bool = False
    opened: bool = False
    liked: bool = False
    visit_order: int = NEVER_VISITED

    STATIC_FIELDS = ('title', 'year', 'advisors', 'builders', 'description', 'fun_fact', 'images')
    DYNAMIC_FIELDS = ('visited', 'opened', 'liked', 'visit_order')

    def copy(self) -> 'Structure':
        """Detached copy safe to hand to observers."""
        return replace(
            self,
            advisors=list(self.advisors),
            builders=list(self.builders),
            images=list(self.images),
        )

    def dynamic_state(self) -> Dict[str, Any]:
        """Progress fields only."""
        return {name: getattr(self, name) for name in self.DYNAMIC_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'number': self.number,
            'title': self.title,
            'year': self.year,
            'advisors': list(self.advisors),
            'builders': list(self.builders),
            'description': self.description,
            'fun_fact': self.fun_fact,
            'images': list(self.images),
            'visited': self.visited,
            'opened': self.opened,
            'liked': self.liked,
            'visit_order': self.visit_order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Structure':
        """
        Deserialize from dict. Missing dynamic fields take their defaults.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            return cls(
                number=int(data['number']),
                title=str(data['title']),
                year=str(data.get('year', "")),
                advisors=list(data.get('advisors') or []),
                builders=list(data.get('builders') or []),
                description=str(data.get('description', "")),
                fun_fact=data.get('fun_fact'),
                images=list(data.get('images') or []),
                visited=bool(data.get('visited', False)),
                opened=bool(data.get('opened', False)),
                liked=bool(data.get('liked', False)),
                visit_order=int(data.get('visit_order', NEVER_VISITED)),
            )
        except KeyError as e:
            raise ValueError(f"Missing required Structure field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid Structure data: {e}")
