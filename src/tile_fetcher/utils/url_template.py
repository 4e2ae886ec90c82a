import re
from typing import FrozenSet, Optional


PLACEHOLDER_PATTERN = re.compile(r'\{(x|y|z|-y|s)\}')


class UrlTemplate:
    """Tile URL template with {x} {y} {z} {-y} {s} placeholders.

    All placeholders are substituted in a single pass, so a substituted
    value is never scanned for placeholders again.
    """
    
    def __init__(self, template: str):
        self.template = template
        self.placeholders: FrozenSet[str] = frozenset(PLACEHOLDER_PATTERN.findall(template))
    
    @property
    def uses_subdomains(self) -> bool:
        return 's' in self.placeholders
    
    def render(self, x: int, y: int, z: int, subdomain: Optional[str] = None) -> str:
        """Build the URL for one tile. {s} stays untouched without a subdomain."""
        values = {
            'x': str(x),
            'y': str(y),
            'z': str(z),
            # TMS counts rows from the bottom
            '-y': str(2 ** z - 1 - y),
        }
        if subdomain is not None:
            values['s'] = subdomain
        
        return PLACEHOLDER_PATTERN.sub(lambda m: values.get(m.group(1), m.group(0)), self.template)
    
    def __repr__(self) -> str:
        return f"UrlTemplate({self.template!r})"
