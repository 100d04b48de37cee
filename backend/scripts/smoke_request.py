"""Run a quick request round against the app without starting a server.

Hits `/health`, logs in as the demo Admin and lists users through
FastAPI's TestClient. Useful after changing the seed data.
"""

import os
import sys

# Ensure backend folder is on sys.path so `gym_api` package can be imported
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient

from gym_api.main import app
from gym_api.seed import ADMIN_PASSWORD


def run():
    client = TestClient(app)
    resp = client.get('/health')
    print('HEALTH:', resp.status_code, resp.json())
    resp = client.post('/api/v1/auth/login', json={'login': 'admin@app.com', 'password': ADMIN_PASSWORD})
    print('LOGIN:', resp.status_code)
    if resp.status_code != 200:
        print('CONTENT:', resp.text)
        return
    token = resp.json()['data']['access_token']
    resp = client.get('/api/v1/users', headers={'Authorization': f'Bearer {token}'})
    body = resp.json()
    print('USERS:', resp.status_code, body.get('results'))
    for user in body['data']['users']:
        print(f"  {user['id']:>3} {user['role']:<10} {user['email']}")


if __name__ == '__main__':
    run()
