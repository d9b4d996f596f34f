"""Survey provider catalog and provider-config validation.

Curriculum surveys live in external tools; each provider declares the
config fields it needs. `validate_provider_config` returns a mapping of
field name to error message (empty when the config is valid).
"""

from typing import Dict, List
from urllib.parse import urlparse

SURVEY_PROVIDERS: Dict[str, dict] = {
    'google_forms': {
        'label': 'Google Forms',
        'hosts': ('docs.google.com', 'forms.gle', 'forms.google.com'),
        'fields': [{'key': 'form_url', 'label': 'Form URL', 'required': True}],
    },
    'microsoft_forms': {
        'label': 'Microsoft Forms',
        'hosts': ('forms.office.com', 'forms.microsoft.com'),
        'fields': [{'key': 'form_url', 'label': 'Form URL', 'required': True}],
    },
    'typeform': {
        'label': 'Typeform',
        'hosts': ('typeform.com',),
        'fields': [
            {'key': 'form_url', 'label': 'Form URL', 'required': True},
            {'key': 'form_id', 'label': 'Form ID', 'required': False},
        ],
    },
    'surveymonkey': {
        'label': 'SurveyMonkey',
        'hosts': ('surveymonkey.com',),
        'fields': [{'key': 'form_url', 'label': 'Survey URL', 'required': True}],
    },
    'other': {
        'label': 'Other',
        'hosts': (),
        'fields': [{'key': 'form_url', 'label': 'Survey URL', 'required': True}],
    },
}


def get_provider_config_fields(provider: str) -> List[dict]:
    provider_def = SURVEY_PROVIDERS.get(provider) or SURVEY_PROVIDERS['other']
    return list(provider_def['fields'])


def _host_matches(host: str, allowed) -> bool:
    return any(host == h or host.endswith('.' + h) for h in allowed)


def validate_provider_config(provider: str, config: dict) -> Dict[str, str]:
    """Validate `config` for `provider` and return per-field errors."""
    errors: Dict[str, str] = {}
    provider_def = SURVEY_PROVIDERS.get(provider)
    if provider_def is None:
        return {'provider': f'Unknown survey provider: {provider}'}
    config = config or {}
    for fld in provider_def['fields']:
        value = config.get(fld['key'])
        if fld['required'] and (value is None or not str(value).strip()):
            errors[fld['key']] = f"{fld['label']} is required"
    url = str(config.get('form_url') or '').strip()
    if url and 'form_url' not in errors:
        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            errors['form_url'] = 'Please enter a valid URL'
        elif provider_def['hosts'] and not _host_matches(parsed.hostname or '', provider_def['hosts']):
            errors['form_url'] = f"URL does not look like a {provider_def['label']} link"
    answer_key = config.get('answer_key')
    if answer_key is not None and not isinstance(answer_key, dict):
        errors['answer_key'] = 'Answer key must be an object'
    return errors
