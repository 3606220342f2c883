"""
Event catalogue for the Value Creation Summit.

Loaded once from ``settings.SUMMIT_EVENTS`` (falling back to ``DEFAULT_EVENTS``)
and shared by the API, forms and emails.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

from .exceptions import UnknownEvent


DEFAULT_EVENTS = {
    'sme': {
        'title': 'SMEs Connect: Beyond Profit - Building Legacies',
        'date': 'September 8, 2025',
        'time': '9:00 AM',
        'location': 'Accra City Hotel',
        'price': '1500.00',
        'currency': 'GHS',
        'description': (
            'Calling All SME Owners & Entrepreneurs! Are you ready to transform '
            'your business from surviving to thriving?'
        ),
        'facilitator': 'Ugochukwu Omeogu',
        'image': '/images/sme.jpeg',
    },
    'ceo': {
        'title': '2025 CEO Roundtable - Lead the Business, Scale to Legacy',
        'date': 'September 9, 2025',
        'time': '9:00 AM - 3:00 PM',
        'location': 'Accra City Hotel',
        'price': '2500.00',
        'currency': 'GHS',
        'description': (
            "The greatest shift in your business won't come from more capital or "
            "a bigger team. It'll come from you becoming a better leader."
        ),
        'facilitator': 'Ugochukwu Omeogu',
        'image': '/images/ceo.jpg',
    },
    'wealth': {
        'title': 'Wealth Creation Strategies Masterclass',
        'date': 'September 12, 2025',
        'time': '10:00 AM',
        'location': 'Accra City Hotel',
        'price': '1200.00',
        'currency': 'GHS',
        'description': (
            'Ready to transform your life and business? Join us for Wealth Creation '
            "Strategies, a premium event where you'll gain actionable insights to "
            'scale your enterprise.'
        ),
        'facilitator': 'Ugochukwu Omeogu',
        'image': '/images/wealth.jpeg',
    },
}


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    date: str
    time: str
    location: str
    price: Decimal
    currency: str = 'GHS'
    description: str = ''
    facilitator: str = ''
    image: str = ''

    @property
    def price_display(self):
        return f"{self.price:,.0f} {self.currency}"

    def as_dict(self):
        data = asdict(self)
        data['price'] = str(self.price)
        data['price_display'] = self.price_display
        return data


class EventCatalogue:
    """Read-only map of event id -> Event."""

    def __init__(self, events):
        self._events = {}
        for event_id, raw in events.items():
            fields = dict(raw)
            fields['id'] = event_id
            fields['price'] = Decimal(str(fields['price']))
            self._events[event_id] = Event(**fields)

    def __contains__(self, event_id):
        return event_id in self._events

    def __iter__(self):
        return iter(self._events.values())

    def __len__(self):
        return len(self._events)

    def get(self, event_id):
        try:
            return self._events[event_id]
        except KeyError:
            raise UnknownEvent(f"Unknown event type: {event_id}") from None

    def choices(self):
        return [(event.id, event.title) for event in self]


_catalogue = None


def get_catalogue():
    """Return the shared catalogue, building it on first use."""
    global _catalogue
    if _catalogue is None:
        _catalogue = EventCatalogue(getattr(settings, 'SUMMIT_EVENTS', None) or DEFAULT_EVENTS)
    return _catalogue


@receiver(setting_changed)
def _reset_catalogue(sender, setting, **kwargs):
    global _catalogue
    if setting == 'SUMMIT_EVENTS':
        _catalogue = None
