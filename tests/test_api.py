"""
Tests for the HTTP API using the Flask test client
"""

import io

import pytest

from backend.app import App
from mmr_processor.config.config_manager import ConfigManager
from mmr_processor.jobs import InMemoryJobStore

USER = {'X-User-Id': 'user-1'}
OTHER_USER = {'X-User-Id': 'user-2'}


@pytest.fixture
def server(tmp_path):
    server = App(config_manager=ConfigManager(str(tmp_path / "config.json")),
                 store=InMemoryJobStore(), start_workers=False)
    server.app.config['TESTING'] = True
    yield server
    server.job_queue.stop(timeout=5)


@pytest.fixture
def client(server):
    return server.app.test_client()


def upload(content: bytes, name: str = "report.xlsx"):
    return {'file': (io.BytesIO(content), name)}


def submit(client, content: bytes, headers=USER):
    return client.post('/api/mmr/process', data=upload(content), headers=headers,
                       content_type='multipart/form-data')


class TestProcessRoutes:
    def test_process_queues_job(self, client, summary_workbook):
        response = submit(client, summary_workbook)

        assert response.status_code == 202
        body = response.get_json()
        assert body['success'] is True
        assert body['status'] == 'pending'
        assert body['job_id']

    def test_missing_user_header(self, client, summary_workbook):
        response = submit(client, summary_workbook, headers={})
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_missing_file(self, client):
        response = client.post('/api/mmr/process', headers=USER)
        assert response.status_code == 400

    def test_unsupported_extension(self, client):
        response = client.post('/api/mmr/process', data=upload(b"data", "report.pdf"), headers=USER,
                               content_type='multipart/form-data')
        assert response.status_code == 400
        assert "Unsupported file type" in response.get_json()['error']

    def test_batch(self, client, summary_workbook):
        files = [(io.BytesIO(summary_workbook), "a.xlsx"), (io.BytesIO(summary_workbook), "b.xlsx")]
        response = client.post('/api/mmr/batch', data={'files': files}, headers=USER,
                               content_type='multipart/form-data')

        assert response.status_code == 202
        body = response.get_json()
        assert body['count'] == 2
        assert [job['file_name'] for job in body['jobs']] == ["a.xlsx", "b.xlsx"]

    def test_batch_over_limit(self, client, server):
        files = [(io.BytesIO(b"x"), f"{index}.xlsx") for index in range(11)]
        response = client.post('/api/mmr/batch', data={'files': files}, headers=USER,
                               content_type='multipart/form-data')

        assert response.status_code == 400
        assert server.service.get_user_jobs('user-1') == []

    def test_parse_now(self, client, full_workbook):
        response = client.post('/api/mmr/parse', data=upload(full_workbook), headers=USER,
                               content_type='multipart/form-data')

        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['result']['data']['project_id'] == "PRJ006"
        assert body['result']['confidence'] == 100
        assert 'manpower' not in body['result']['data']['annexures']


class TestJobRoutes:
    def test_status(self, client, summary_workbook):
        job_id = submit(client, summary_workbook).get_json()['job_id']
        response = client.get(f'/api/mmr/jobs/{job_id}', headers=USER)

        assert response.status_code == 200
        assert response.get_json()['job']['status'] == 'pending'

    def test_status_of_other_users_job(self, client, summary_workbook):
        job_id = submit(client, summary_workbook).get_json()['job_id']
        assert client.get(f'/api/mmr/jobs/{job_id}', headers=OTHER_USER).status_code == 403

    def test_unknown_job(self, client):
        assert client.get('/api/mmr/jobs/missing', headers=USER).status_code == 404

    def test_completed_job_carries_result(self, client, server, summary_workbook):
        job_id = submit(client, summary_workbook).get_json()['job_id']
        server.job_queue.start()
        assert server.job_queue.wait_until_idle(timeout=30)

        job = client.get(f'/api/mmr/jobs/{job_id}', headers=USER).get_json()['job']
        assert job['status'] == 'completed'
        assert job['result']['parse_result']['confidence'] == 100

    def test_list_and_filter(self, client, summary_workbook):
        first = submit(client, summary_workbook).get_json()['job_id']
        second = submit(client, summary_workbook).get_json()['job_id']
        client.post(f'/api/mmr/jobs/{first}/cancel', headers=USER)

        body = client.get('/api/mmr/jobs', headers=USER).get_json()
        assert body['count'] == 2
        assert {job['job_id'] for job in body['jobs']} == {first, second}

        cancelled = client.get('/api/mmr/jobs?status=cancelled', headers=USER).get_json()
        assert [job['job_id'] for job in cancelled['jobs']] == [first]

    def test_list_rejects_bad_paging(self, client):
        assert client.get('/api/mmr/jobs?limit=0', headers=USER).status_code == 400

    def test_cancel_twice_conflicts(self, client, summary_workbook):
        job_id = submit(client, summary_workbook).get_json()['job_id']

        assert client.post(f'/api/mmr/jobs/{job_id}/cancel', headers=USER).status_code == 200
        assert client.post(f'/api/mmr/jobs/{job_id}/cancel', headers=USER).status_code == 409

    def test_delete(self, client, summary_workbook):
        job_id = submit(client, summary_workbook).get_json()['job_id']

        assert client.delete(f'/api/mmr/jobs/{job_id}', headers=OTHER_USER).status_code == 403
        assert client.delete(f'/api/mmr/jobs/{job_id}', headers=USER).status_code == 200
        assert client.get(f'/api/mmr/jobs/{job_id}', headers=USER).status_code == 404


class TestConfigRoutes:
    def test_inquiry(self, client):
        body = client.get('/api/config/inquiry').get_json()

        assert body['success'] is True
        assert body['config']['validation']['expenditure_tolerance'] == 100
        assert 'anx_short' in body['config']['classifier']['profiles']

    def test_update_reloads_processor(self, client, server):
        response = client.post('/api/config/update', json={
            'section': 'validation',
            'values': {'expenditure_tolerance': 500},
        })

        assert response.status_code == 200
        assert response.get_json()['updated_section'] == 'validation'
        assert server.processor.validator.rules.expenditure_tolerance == 500
        assert server.worker.processor is server.processor

    def test_update_unknown_field(self, client):
        response = client.post('/api/config/update', json={'section': 'validation', 'values': {'nope': 1}})
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_update_invalid_weights(self, client):
        response = client.post('/api/config/update', json={
            'section': 'confidence_weights',
            'values': {'header_match': 0.9},
        })
        assert response.status_code == 400

    def test_reset(self, client, server):
        client.post('/api/config/update', json={'section': 'ingress', 'values': {'max_batch_size': 2}})
        assert server.service.config.max_batch_size == 2

        assert client.post('/api/config/reset').status_code == 200
        assert server.service.config.max_batch_size == 10
