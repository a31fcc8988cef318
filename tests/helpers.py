#
# Shared helpers for building canned HTTP responses
#

import json
import os
from unittest.mock import Mock

import requests


def fake_response(payload=None, status_code=200, text=None):
    response = requests.Response()
    response.status_code = status_code
    response.encoding = 'utf-8'
    if text is not None:
        response._content = text.encode('utf-8')
    elif payload is None:
        response._content = b''
    else:
        response._content = json.dumps(payload).encode('utf-8')
    return response


def mock_session(*responses):
    session = Mock(spec=requests.Session)
    session.request.side_effect = list(responses)
    return session


def clean_env(**extra):
    env = {'PATH': os.environ.get('PATH', '')}
    env.update(extra)
    return env
