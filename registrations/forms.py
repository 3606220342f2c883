"""
Django forms for registration.
"""
import re

from django import forms

from .events import get_catalogue
from .models import Registration

PHONE_RE = re.compile(r'^\+?[0-9\s\-()]{10,}$')


class RegistrationForm(forms.ModelForm):
    """
    Registrant details captured before checkout.
    """
    event_type = forms.ChoiceField(choices=())

    # Honeypot field for spam protection (should stay empty)
    website = forms.CharField(required=False, widget=forms.HiddenInput())

    class Meta:
        model = Registration
        fields = ['event_type', 'full_name', 'email', 'phone', 'organization', 'agi_member']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['event_type'].choices = get_catalogue().choices()

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('website'):
            raise forms.ValidationError("Spam detected.")
        return cleaned_data

    def clean_full_name(self):
        return self.cleaned_data['full_name'].strip()

    def clean_organization(self):
        return self.cleaned_data['organization'].strip()

    def clean_phone(self):
        phone = self.cleaned_data.get('phone', '').strip()
        if not PHONE_RE.match(phone):
            raise forms.ValidationError('Please enter a valid phone number.')
        return phone

    @property
    def event(self):
        return get_catalogue().get(self.cleaned_data['event_type'])

    @classmethod
    def from_payload(cls, payload):
        """
        Build the form from the registration page's JSON body:
        ``{"eventType": ..., "formData": {"fullName", "email", "phone", "organization", "agiMember"}}``.
        Flat snake_case bodies are accepted as well.
        """
        form_data = payload.get('formData') or {}
        data = {
            'event_type': payload.get('eventType') or payload.get('event_type') or form_data.get('eventType'),
            'full_name': form_data.get('fullName') or payload.get('full_name'),
            'email': form_data.get('email') or payload.get('email'),
            'phone': form_data.get('phone') or payload.get('phone'),
            'organization': form_data.get('organization') or payload.get('organization'),
            'website': form_data.get('website') or payload.get('website'),
        }
        agi_member = form_data.get('agiMember', payload.get('agi_member', False))
        if agi_member in (True, 'true', 'True', 'on', '1', 1):
            data['agi_member'] = 'on'
        return cls({k: v for k, v in data.items() if v is not None})


class OfflineRegistrationForm(RegistrationForm):
    """
    Staff-entered registration for a payment taken outside Hubtel.
    """
    amount = forms.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)
    note = forms.CharField(max_length=200, required=False)

    @classmethod
    def from_payload(cls, payload):
        form = super().from_payload(payload)
        form.data = dict(form.data)
        for key in ('amount', 'note'):
            if payload.get(key) not in (None, ''):
                form.data[key] = payload[key]
        return form
