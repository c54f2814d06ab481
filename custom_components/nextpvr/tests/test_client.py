"""
Unit tests for api/client.py: NextPvrClient over a fake backend.

Coverage:
- every call passes through the session gate
- backend failure flags become BackendOperationError naming the id
- successful mutations advance last_recording_change, failed ones do not
- the epoch sentinel marks the session stale and forces a new handshake
- post-login defaults and episode artwork switch
- stream resolution through the client
"""

from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from custom_components.nextpvr.api import NextPvrClient
from custom_components.nextpvr.const import EPOCH
from custom_components.nextpvr.errors import (
    BackendOperationError,
    RecordingNotFoundError,
    TransportError,
)
from custom_components.nextpvr.models import SeriesTimer, Timer

from .test_common import BASE_URL, SID, FakeBackend, make_config, make_raw_recording, make_recording


class TestReads(unittest.IsolatedAsyncioTestCase):

    async def test_get_channels_handshakes_first(self):
        backend = FakeBackend({
            "channel.list": {"channels": [
                {"channelId": 7, "channelName": "BBC One", "channelNumber": 1, "channelType": "1", "channelIcon": True},
                {"channelId": 8, "channelName": "Radio 4", "channelNumber": 704, "channelType": "10"},
            ]},
        })
        client = NextPvrClient(make_config())
        with backend.patch():
            channels = await client.get_channels()

        self.assertEqual(backend.methods()[:2], ["session.initiate", "session.login"])
        self.assertEqual(backend.calls[-1], {"method": "channel.list", "sid": SID})
        self.assertEqual([c.name for c in channels], ["BBC One", "Radio 4"])
        self.assertTrue(channels[0].has_image)
        self.assertFalse(channels[1].has_image)
        self.assertEqual(channels[1].channel_type.value, "radio")

    async def test_get_recordings_uses_ready_filter(self):
        backend = FakeBackend({"recording.list": {"recordings": [make_raw_recording(1), make_raw_recording(2)]}})
        client = NextPvrClient(make_config())
        with backend.patch():
            recordings = await client.get_recordings()

        self.assertEqual(backend.calls[-1]["filter"], "ready")
        self.assertEqual([r.id for r in recordings], ["1", "2"])

    async def test_malformed_recording_is_skipped(self):
        backend = FakeBackend({"recording.list": {"recordings": [make_raw_recording(1), {"name": "no id"}]}})
        client = NextPvrClient(make_config())
        with backend.patch():
            recordings = await client.get_recordings()

        self.assertEqual([r.id for r in recordings], ["1"])

    async def test_get_programs_sends_unix_range(self):
        start = datetime(2024, 3, 1, tzinfo=timezone.utc)
        backend = FakeBackend({"channel.listings": {"listings": [
            {"id": 55, "name": "News at Ten", "start": int(start.timestamp()) * 1000,
             "end": (int(start.timestamp()) + 1800) * 1000, "genres": ["News"]},
        ]}})
        client = NextPvrClient(make_config())
        with backend.patch():
            programs = await client.get_programs("7", start, start + timedelta(hours=2))

        call = backend.calls[-1]
        self.assertEqual(call["start"], str(int(start.timestamp())))
        self.assertEqual(call["end"], str(int(start.timestamp()) + 7200))
        self.assertEqual(call["channel_id"], "7")
        self.assertEqual(programs[0].start_time, start)
        self.assertTrue(programs[0].is_news)

    async def test_transport_error_marks_session_stale(self):
        backend = FakeBackend({"channel.list": TransportError("timeout")})
        client = NextPvrClient(make_config())
        with backend.patch():
            with self.assertRaises(TransportError):
                await client.get_channels()

        self.assertTrue(client.is_active)
        self.assertFalse(client.session.is_fresh)

    async def test_get_timers_uses_pending_filter(self):
        backend = FakeBackend({"recording.list": {"recordings": [
            make_raw_recording(5, status="Pending", prePadding=1, postPadding=2),
        ]}})
        client = NextPvrClient(make_config())
        with backend.patch():
            timers = await client.get_timers()

        self.assertEqual(backend.calls[-1]["filter"], "pending")
        self.assertEqual([t.id for t in timers], ["5"])
        self.assertEqual(timers[0].post_padding_seconds, 120)

    async def test_get_series_timers(self):
        backend = FakeBackend({"recording.recurring.list": {"recurrings": [
            {"id": 12, "type": 2, "channelID": 7, "epgTitle": "The Show"},
        ]}})
        client = NextPvrClient(make_config())
        with backend.patch():
            series = await client.get_series_timers()

        self.assertEqual(series[0].id, "12")
        self.assertTrue(series[0].record_any_time)
        self.assertFalse(series[0].record_any_channel)

    async def test_get_backend_setting(self):
        backend = FakeBackend({"setting.get": {"value": "/recordings"}})
        client = NextPvrClient(make_config())
        with backend.patch():
            value = await client.get_backend_setting("/Settings/Recording/RecordingDirectory")

        self.assertEqual(value, "/recordings")
        self.assertEqual(backend.calls[-1]["key"], "/Settings/Recording/RecordingDirectory")

    async def test_get_status_info(self):
        backend = FakeBackend({
            "setting.version": {"readableVersion": "6.1.5", "updateAvailable": False},
            "system.status": {"tuners": [{"tunerName": "DVB-T", "tunerStatus": "idle", "recordings": []}]},
        })
        client = NextPvrClient(make_config())
        with backend.patch():
            status = await client.get_status_info()

        self.assertEqual(status.version, "6.1.5")
        self.assertEqual(status.tuners[0].name, "DVB-T")


class TestAfterLogin(unittest.IsolatedAsyncioTestCase):

    async def test_defaults_and_artwork_switch_loaded(self):
        backend = FakeBackend({
            "setting.list": {"prePadding": 2, "postPadding": 5, "recordAnyTimeslot": "true"},
            "setting.get": {"value": "true"},
        })
        client = NextPvrClient(make_config())
        with backend.patch():
            await client.ensure_connection()

        self.assertEqual(client.timer_defaults.pre_padding_seconds, 120)
        self.assertEqual(client.timer_defaults.post_padding_seconds, 300)
        self.assertTrue(client.timer_defaults.record_any_time)
        self.assertTrue(client.config.get_episode_image)
        setting_call = backend.calls[backend.methods().index("setting.get")]
        self.assertEqual(setting_call["key"], "/Settings/General/ArtworkFromSchedulesDirect")

    async def test_failed_defaults_do_not_break_login(self):
        backend = FakeBackend({"setting.list": TransportError("boom")})
        client = NextPvrClient(make_config())
        with backend.patch():
            sid = await client.ensure_connection()

        self.assertEqual(sid, SID)
        self.assertIsNone(client.timer_defaults)
        self.assertFalse(client.config.get_episode_image)


class TestMutations(unittest.IsolatedAsyncioTestCase):

    async def test_delete_unknown_recording_names_id(self):
        backend = FakeBackend({"recording.delete": {"stat": "fail", "message": "recording not found"}})
        client = NextPvrClient(make_config())
        with backend.patch():
            with self.assertRaises(BackendOperationError) as ctx:
                await client.delete_recording("999")

        self.assertEqual(ctx.exception.identifier, "999")
        self.assertIn("999", str(ctx.exception))
        self.assertEqual(ctx.exception.reason, "recording not found")
        self.assertEqual(client.last_recording_change, EPOCH)

    async def test_delete_without_stat_is_a_failure(self):
        backend = FakeBackend({"recording.delete": {}})
        client = NextPvrClient(make_config())
        with backend.patch():
            with self.assertRaises(BackendOperationError):
                await client.delete_recording("1")

        self.assertEqual(client.last_recording_change, EPOCH)

    async def test_successful_delete_advances_change_marker(self):
        backend = FakeBackend({"recording.delete": {"stat": "ok"}})
        client = NextPvrClient(make_config())
        before = datetime.now(timezone.utc)
        with backend.patch():
            await client.delete_recording("1")

        self.assertGreaterEqual(client.last_recording_change, before)
        self.assertEqual(backend.calls[-1]["recording_id"], "1")

    async def test_create_timer_sends_padding_in_minutes(self):
        backend = FakeBackend({"recording.save": {"stat": "ok"}})
        client = NextPvrClient(make_config())
        timer = Timer(id=None, channel_id="7", program_id="555", name="Film", pre_padding_seconds=150, post_padding_seconds=600)
        with backend.patch():
            await client.create_timer(timer)

        call = backend.calls[-1]
        self.assertEqual(call["event_id"], "555")
        self.assertEqual(call["pre_padding"], "2")
        self.assertEqual(call["post_padding"], "10")
        self.assertNotIn("recording_id", call)
        self.assertGreater(client.last_recording_change, EPOCH)

    async def test_update_timer_failure_names_timer(self):
        backend = FakeBackend({"recording.save": {"stat": "fail"}})
        client = NextPvrClient(make_config())
        timer = Timer(id="42", channel_id="7", program_id="555", name="Film")
        with backend.patch():
            with self.assertRaises(BackendOperationError) as ctx:
                await client.update_timer(timer)

        self.assertEqual(ctx.exception.identifier, "42")
        self.assertEqual(backend.calls[-1]["recording_id"], "42")
        self.assertEqual(client.last_recording_change, EPOCH)

    async def test_create_series_timer_keyword_mode(self):
        backend = FakeBackend({"recording.recurring.save": {"stat": "ok"}})
        client = NextPvrClient(make_config(recording_default="99"))
        series = SeriesTimer(id=None, channel_id="7", program_id="555", name="Grey's Anatomy")
        with backend.patch():
            await client.create_series_timer(series)

        call = backend.calls[-1]
        self.assertEqual(call["name"], "Grey''s Anatomy")
        self.assertEqual(call["keyword"], "title like 'Grey''s Anatomy'")
        self.assertNotIn("event_id", call)

    async def test_create_series_timer_new_episodes_option(self):
        backend = FakeBackend({"recording.recurring.save": {"stat": "ok"}})
        client = NextPvrClient(make_config(recording_default="3", new_episodes=True))
        series = SeriesTimer(id=None, channel_id="7", program_id="555", name="Show")
        with backend.patch():
            await client.create_series_timer(series)

        call = backend.calls[-1]
        self.assertEqual(call["event_id"], "555")
        self.assertEqual(call["recurring_type"], "3")
        self.assertEqual(call["only_new"], "true")
        self.assertEqual(call["timeslot"], "true")

    async def test_cancel_timer_uses_recording_delete(self):
        backend = FakeBackend({"recording.delete": {"stat": "ok"}})
        client = NextPvrClient(make_config())
        with backend.patch():
            await client.cancel_timer("31")

        self.assertEqual(backend.calls[-1]["method"], "recording.delete")
        self.assertEqual(backend.calls[-1]["recording_id"], "31")
        self.assertGreater(client.last_recording_change, EPOCH)

    async def test_update_series_timer_derives_type(self):
        backend = FakeBackend({"recording.recurring.save": {"stat": "ok"}})
        client = NextPvrClient(make_config())
        series = SeriesTimer(id="12", channel_id="7", program_id="555", name="Show", record_any_time=True)
        with backend.patch():
            await client.update_series_timer(series)

        call = backend.calls[-1]
        self.assertEqual(call["recurring_id"], "12")
        self.assertEqual(call["recurring_type"], "2")
        self.assertNotIn("only_new", call)

    async def test_cancel_series_timer(self):
        backend = FakeBackend({"recording.recurring.delete": {"stat": "ok"}})
        client = NextPvrClient(make_config())
        with backend.patch():
            await client.cancel_series_timer("12")

        self.assertEqual(backend.calls[-1]["recurring_id"], "12")
        self.assertGreater(client.last_recording_change, EPOCH)

    def test_new_timer_defaults_use_configured_padding(self):
        client = NextPvrClient(make_config(pre_padding_seconds=60, post_padding_seconds=300))
        defaults = client.get_new_timer_defaults()

        self.assertEqual(defaults.pre_padding_seconds, 60)
        self.assertEqual(defaults.post_padding_seconds, 300)
        self.assertIsNone(defaults.id)


class TestLastUpdate(unittest.IsolatedAsyncioTestCase):

    async def test_marker_slides_session(self):
        backend = FakeBackend({"recording.lastupdated": {"last_updated": 1_700_000_000}})
        client = NextPvrClient(make_config())
        with backend.patch():
            marker = await client.get_last_update()

        self.assertEqual(marker, datetime.fromtimestamp(1_700_000_000, tz=timezone.utc))
        self.assertTrue(client.session.is_fresh)
        self.assertEqual(backend.calls[-1]["ignore_resume"], "true")

    async def test_epoch_marks_stale_and_next_call_handshakes(self):
        backend = FakeBackend({
            "recording.lastupdated": {"last_updated": 0},
            "channel.list": {"channels": []},
        })
        client = NextPvrClient(make_config())
        with backend.patch():
            marker = await client.get_last_update()
            self.assertEqual(marker, EPOCH)
            self.assertFalse(client.session.is_fresh)

            await client.get_channels()

        self.assertEqual(client.session.handshake_count, 2)

    async def test_transport_failure_returns_epoch(self):
        backend = FakeBackend({"recording.lastupdated": TransportError("offline")})
        client = NextPvrClient(make_config())
        with backend.patch():
            marker = await client.get_last_update()

        self.assertEqual(marker, EPOCH)
        self.assertFalse(client.session.is_fresh)


class TestStreams(unittest.IsolatedAsyncioTestCase):

    async def test_channel_streams_are_numbered(self):
        client = NextPvrClient(make_config())
        with FakeBackend().patch():
            first = await client.get_channel_stream("7")
            second = await client.get_channel_stream("7")

        self.assertIn("client=homeassistant.1", first.path)
        self.assertIn("client=homeassistant.2", second.path)
        self.assertTrue(first.path.startswith(f"{BASE_URL}/live?channeloid=7"))
        self.assertIn(f"sid={SID}", first.path)

    async def test_recording_stream_from_known_snapshot(self):
        client = NextPvrClient(make_config())
        stream = await client.get_recording_stream("1", known=[make_recording("1")])

        self.assertEqual(stream.protocol, "http")
        self.assertEqual(stream.id, "1")

    async def test_unknown_recording_raises(self):
        client = NextPvrClient(make_config())
        with self.assertRaises(RecordingNotFoundError):
            await client.get_recording_stream("404", known=[make_recording("1")])
