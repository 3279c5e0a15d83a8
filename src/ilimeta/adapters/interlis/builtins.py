"""The predefined ``INTERLIS`` model.

Only the domains that attribute types commonly refer to are declared. The
temporal formats refer to themselves so that the walker can tell them apart by
comparing the resolved base domain.
"""

from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING, Final

from .parser import parse_models

if TYPE_CHECKING:
    from .nodes import ModelDef

BUILTIN_MODEL_NAME: Final = "INTERLIS"
XML_DATE: Final = "INTERLIS.XMLDate"
XML_TIME: Final = "INTERLIS.XMLTime"
XML_DATE_TIME: Final = "INTERLIS.XMLDateTime"
BOOLEAN_DOMAIN: Final = "INTERLIS.BOOLEAN"

INTERLIS_SOURCE: Final = """\
INTERLIS 2.3;

TYPE MODEL INTERLIS (en) AT "http://www.interlis.ch/" VERSION "2.3" =

  DOMAIN
    BOOLEAN = (false, true);
    HALIGNMENT = (Left, Center, Right);
    VALIGNMENT = (Top, Cap, Half, Base, Bottom);
    NAME = TEXT*255;
    URI = TEXT*1023;
    INTERLIS_1_DATE = TEXT*8;
    XMLDate = FORMAT XMLDate "1900-1-1" .. "2999-12-31";
    XMLDateTime = FORMAT XMLDateTime "1900-1-1T0:0:0.000" .. "2999-12-31T23:59:59.999";
    XMLTime = FORMAT XMLTime "0:0:0.000" .. "23:59:59.999";
    STANDARDOID = OID TEXT*16;
    UUIDOID = OID TEXT*36;
    I32OID = OID 0 .. 2147483647;

END INTERLIS.
"""


@cache
def _builtin_models() -> tuple[ModelDef, ...]:
    return tuple(parse_models(INTERLIS_SOURCE, origin="<INTERLIS>"))


def builtin_model() -> ModelDef:
    """Return the parsed ``INTERLIS`` model."""

    return _builtin_models()[0]
