import unittest
from datetime import datetime

from pydantic import ValidationError

from app.models.ingestion import PopEntry, PopSubmission, naive_datetime_to_millis
from support import compact_pop_request, verbose_pop_request


class TestPopRequestParsing(unittest.TestCase):
    def assert_valid_request_content(self, submission: PopSubmission):
        self.assertEqual(submission.api_key, "some_secure_api_key")
        self.assertEqual(submission.player_id, 12345)
        self.assertEqual(len(submission.pops), 2)

        first, second = submission.pops
        self.assertEqual(first.display_unit_id, 4456)
        self.assertEqual(first.frame_id, 4457)
        self.assertEqual(first.active_screens_count, 1)
        self.assertEqual(first.ad_copy_id, 5001)
        self.assertEqual(first.campaign_id, 5002)
        self.assertEqual(first.schedule_id, 5003)
        self.assertEqual(first.impressions, 2)
        self.assertEqual(first.interactions, 0)
        self.assertEqual(first.end_time, datetime(2016, 5, 31, 10, 14, 50, 200000))
        self.assertEqual(first.duration_ms, 5000)
        self.assertEqual(first.service_name, "bmb")
        self.assertEqual(first.service_value, "3451")
        self.assertEqual(first.extra_data, "")

        self.assertEqual(second.display_unit_id, 3456)
        self.assertEqual(second.impressions, 4)
        self.assertEqual(second.interactions, 1)
        self.assertEqual(second.end_time, datetime(2016, 5, 31, 10, 14, 55, 200000))
        self.assertEqual(second.service_name, "")
        self.assertEqual(second.service_value, "")

    def test_compact_request_is_parsed(self):
        body = compact_pop_request("some_secure_api_key")
        self.assert_valid_request_content(PopSubmission.model_validate(body))

    def test_verbose_request_is_parsed(self):
        compact = compact_pop_request("some_secure_api_key")
        keys = (
            "display_unit_id", "frame_id", "n_screens", "ad_copy_id", "campaign_id",
            "schedule_id", "impressions", "interactions", "end_time", "duration",
            "ext1", "ext2", "extra_data",
        )
        body = dict(compact, pop=[dict(zip(keys, row)) for row in compact["pop"]])
        self.assert_valid_request_content(PopSubmission.model_validate(body))

    def test_both_forms_yield_identical_submissions(self):
        compact = compact_pop_request()
        verbose = PopSubmission.model_validate(
            {
                "api_key": "k1",
                "player_id": 12345,
                "pop": [
                    PopEntry.model_validate(row).model_dump(by_alias=True)
                    for row in compact["pop"]
                ],
            }
        )
        self.assertEqual(PopSubmission.model_validate(compact), verbose)

    def test_missing_extra_data_is_absent_not_an_error(self):
        body = verbose_pop_request()
        del body["pop"][0]["extra_data"]
        submission = PopSubmission.model_validate(body)
        self.assertIsNone(submission.pops[0].extra_data)
        self.assertIsNone(submission.pops[0].serialized_extra_data())

        row = compact_pop_request()["pop"][0][:-1]
        self.assertIsNone(PopEntry.model_validate(row).extra_data)

    def test_structured_extra_data_is_serialized_as_json(self):
        body = verbose_pop_request()
        body["pop"][0]["extra_data"] = {"sensor": {"temp": 21.5}, "tags": ["a"]}
        entry = PopSubmission.model_validate(body).pops[0]
        self.assertEqual(
            entry.serialized_extra_data(), '{"sensor": {"temp": 21.5}, "tags": ["a"]}'
        )

    def test_compact_entry_with_wrong_arity_is_rejected(self):
        body = compact_pop_request()
        body["pop"][0] = body["pop"][0][:5]
        with self.assertRaises(ValidationError):
            PopSubmission.model_validate(body)

    def test_negative_counts_are_rejected(self):
        body = verbose_pop_request()
        body["pop"][0]["impressions"] = -1
        with self.assertRaises(ValidationError):
            PopSubmission.model_validate(body)

    def test_values_beyond_storage_range_are_rejected(self):
        body = verbose_pop_request()
        body["pop"][0]["ad_copy_id"] = 2**63
        with self.assertRaises(ValidationError):
            PopSubmission.model_validate(body)

        body = verbose_pop_request()
        body["pop"][0]["duration"] = 2**31
        with self.assertRaises(ValidationError):
            PopSubmission.model_validate(body)

        body = verbose_pop_request()
        body["pop"][0]["ad_copy_id"] = 2**63 - 1
        self.assertEqual(PopSubmission.model_validate(body).pops[0].ad_copy_id, 2**63 - 1)

    def test_timezone_aware_end_time_is_rejected(self):
        body = verbose_pop_request()
        body["pop"][0]["end_time"] = "2017-11-23T13:27:12.500+02:00"
        with self.assertRaises(ValidationError):
            PopSubmission.model_validate(body)

    def test_empty_batch_is_rejected(self):
        body = verbose_pop_request()
        body["pop"] = []
        with self.assertRaises(ValidationError):
            PopSubmission.model_validate(body)

    def test_end_time_is_stored_as_naive_epoch_millis(self):
        entry = PopSubmission.model_validate(verbose_pop_request()).pops[0]
        self.assertEqual(entry.end_time_ms, 1511443632500)
        self.assertEqual(naive_datetime_to_millis(datetime(1970, 1, 1)), 0)


if __name__ == "__main__":
    unittest.main()
