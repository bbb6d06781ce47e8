import os, tempfile
from pathlib import Path
import unittest as test
from unittest.mock import Mock

from replicate import transmit
from replicate.transmit import SkipFilter, TransmissionPipeline, TransmitAIP, TransmitSingleAIP
from replicate.curate import Status, Curator, Invoked, SuspendPolicy
from replicate.store import TransferOutcome, ReplicaManager, LocalObjectStore
from replicate.objects import DigitalObject, Bitstream, InMemoryObjectSource, COLLECTION
from replicate.pack import PackerFactory
from replicate.exceptions import (AIPProcessingError, AuthorizationError, PersistenceError,
                                  StateException, ConfigurationException)

tmpdir = tempfile.TemporaryDirectory(prefix="_test_transmit.")

def tearDownModule():
    tmpdir.cleanup()

class FakeArtifact(object):
    def __init__(self, name, length):
        self.name = name
        self.length = length

def make_mocks(outcome, name="item-42.zip", length=4096):
    replicas = Mock()
    replicas.store_name = "DuraCloud"
    replicas.stage.side_effect = lambda group, objid: "/staging/%s/%s.zip" % (group, objid)
    replicas.transfer.return_value = outcome

    packer = Mock()
    packer.pack.return_value = FakeArtifact(name, length)
    packers = Mock()
    packers.instance.return_value = packer
    return replicas, packers, packer

class TestSkipFilter(test.TestCase):

    def test_empty(self):
        for cfg in (None, ""):
            sf = SkipFilter(cfg)
            self.assertEqual(sf.ids, [])
            self.assertFalse(sf)
            self.assertFalse(sf.should_skip("abc123"))
            self.assertFalse(sf.should_skip(""))

    def test_trimmed_match(self):
        sf = SkipFilter("abc123, xyz789 ,  lmn456")
        self.assertTrue(sf)
        self.assertTrue(sf.should_skip("abc123"))
        self.assertTrue(sf.should_skip("xyz789"))
        self.assertTrue(sf.should_skip("lmn456"))
        self.assertFalse(sf.should_skip("def000"))

        # tokens are kept as given
        self.assertEqual(sf.ids, ["abc123", " xyz789 ", "  lmn456"])

    def test_exact_match(self):
        sf = SkipFilter("123456789/42")
        self.assertTrue(sf.should_skip("123456789/42"))
        self.assertFalse(sf.should_skip("123456789/4"))
        self.assertFalse(sf.should_skip("123456789/421"))
        self.assertFalse(sf.should_skip(" 123456789/42"))

    def test_case_sensitive(self):
        sf = SkipFilter("ABC123")
        self.assertTrue(sf.should_skip("ABC123"))
        self.assertFalse(sf.should_skip("abc123"))

class TestTransmissionPipeline(test.TestCase):

    def test_ctor(self):
        replicas, packers, packer = make_mocks(TransferOutcome.matched())
        pl = TransmissionPipeline(replicas, packers, "aips", "a, b")
        self.assertEqual(pl.group, "aips")
        self.assertTrue(pl.should_skip("b"))
        self.assertEqual(pl.store_name, "DuraCloud")

        pl = TransmissionPipeline(replicas, packers, "aips", SkipFilter("c"))
        self.assertTrue(pl.should_skip("c"))
        self.assertFalse(pl.should_skip("a"))

        with self.assertRaises(ConfigurationException):
            TransmissionPipeline(replicas, packers, "")

    def test_skip(self):
        replicas, packers, packer = make_mocks(TransferOutcome.transferred(10))
        pl = TransmissionPipeline(replicas, packers, "aips", "abc123, xyz789")

        status, msg = pl.process("xyz789")
        self.assertEqual(status, Status.SKIP)
        self.assertEqual(msg, "This item is in the replicate skiplist: xyz789")
        replicas.stage.assert_not_called()
        replicas.transfer.assert_not_called()
        packers.instance.assert_not_called()
        packer.pack.assert_not_called()

    def test_matched(self):
        replicas, packers, packer = make_mocks(TransferOutcome.matched())
        pl = TransmissionPipeline(replicas, packers, "aips")

        status, msg = pl.process("item-42")
        self.assertEqual(status, Status.SUCCESS)
        self.assertEqual(msg, "Checksum matched. New AIP was not transmitted for item-42")
        self.assertNotIn("size", msg)

        replicas.stage.assert_called_once_with("aips", "item-42")
        packers.instance.assert_called_once_with("item-42")
        packer.pack.assert_called_once_with("/staging/aips/item-42.zip")
        replicas.transfer.assert_called_once_with("aips", packer.pack.return_value)

    def test_failed(self):
        replicas, packers, packer = make_mocks(TransferOutcome.failed())
        pl = TransmissionPipeline(replicas, packers, "aips")

        status, msg = pl.process("item-42")
        self.assertEqual(status, Status.UNSET)
        self.assertIn("failed", msg)
        self.assertIn("item-42", msg)
        self.assertEqual(msg, "Transmission to DuraCloud failed for: item-42")

    def test_transferred(self):
        replicas, packers, packer = make_mocks(TransferOutcome.transferred(4096))
        pl = TransmissionPipeline(replicas, packers, "aips")

        status, msg = pl.process("item-42")
        self.assertEqual(status, Status.SUCCESS)
        self.assertEqual(msg, "Created AIP: 'item-42.zip' size: 4096")

    def test_reports_local_length(self):
        replicas, packers, packer = make_mocks(TransferOutcome.transferred(99), "obj.zip", 2048)
        pl = TransmissionPipeline(replicas, packers, "aips")

        status, msg = pl.process("obj")
        self.assertEqual(status, Status.SUCCESS)
        self.assertIn("2048", msg)
        self.assertNotIn("99", msg)

    def test_legacy_size_outcomes(self):
        for size, status in ((-1, Status.UNSET), (0, Status.SUCCESS), (512, Status.SUCCESS)):
            replicas, packers, packer = make_mocks(size)
            pl = TransmissionPipeline(replicas, packers, "aips")
            self.assertEqual(pl.process("item-42")[0], status)

        replicas, packers, packer = make_mocks(0)
        pl = TransmissionPipeline(replicas, packers, "aips")
        self.assertIn("Checksum matched", pl.process("item-42")[1])

    def test_distinct_staging(self):
        replicas, packers, packer = make_mocks(TransferOutcome.transferred(10))
        pl = TransmissionPipeline(replicas, packers, "aips")
        pl.process("item-1")
        pl.process("item-2")

        self.assertEqual([c.args for c in replicas.stage.call_args_list],
                         [("aips", "item-1"), ("aips", "item-2")])
        locs = [c.args[0] for c in packer.pack.call_args_list]
        self.assertEqual(len(set(locs)), 2)

        # the same group is used for staging and transfer
        for c in replicas.transfer.call_args_list:
            self.assertEqual(c.args[0], "aips")

    def test_pack_failures(self):
        for exc in (AuthorizationError("item-42"), PersistenceError("item-42")):
            replicas, packers, packer = make_mocks(TransferOutcome.transferred(10))
            packer.pack.side_effect = exc
            pl = TransmissionPipeline(replicas, packers, "aips")

            with self.assertRaises(AIPProcessingError) as cm:
                pl.process("item-42")
            self.assertIs(cm.exception.cause, exc)
            self.assertEqual(cm.exception.id, "item-42")
            replicas.transfer.assert_not_called()

    def test_outcome_messages_left_to_caller(self):
        log = Mock()
        replicas, packers, packer = make_mocks(TransferOutcome.failed())
        pl = TransmissionPipeline(replicas, packers, "aips", "abc123", log)

        skipmsg = pl.process("abc123")[1]
        failmsg = pl.process("item-42")[1]
        for call in log.method_calls:
            self.assertNotIn(skipmsg, call.args)
            self.assertNotIn(failmsg, call.args)
            self.assertNotIn(call[0], ("info", "warning", "error"))

    def test_stage_failure(self):
        replicas, packers, packer = make_mocks(TransferOutcome.transferred(10))
        replicas.stage.side_effect = StateException("no staging area")
        pl = TransmissionPipeline(replicas, packers, "aips")

        with self.assertRaises(AIPProcessingError) as cm:
            pl.process("item-42")
        self.assertIsInstance(cm.exception.cause, StateException)
        packer.pack.assert_not_called()
        replicas.transfer.assert_not_called()

def make_objects():
    return InMemoryObjectSource([
        DigitalObject("123456789/1", COLLECTION, {"title": "A Collection"},
                      members=["123456789/2", "123456789/3"]),
        DigitalObject("123456789/2", metadata={"title": "First"}, parent="123456789/1",
                      bitstreams=[Bitstream("readme.txt", content=b"Read me.\n")]),
        DigitalObject("123456789/3", metadata={"title": "Second"}, parent="123456789/1",
                      bitstreams=[Bitstream("data.csv", content=b"a,b\n1,2\n")], restricted=True)
    ])

class TestTransmitAIP(test.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(dir=tmpdir.name)
        self.objects = make_objects()
        self.config = {
            "replicate": {
                "group": { "aip": { "name": "aipstore" } },
                "transmitaip": { "skiplist": "123456789/9" },
                "staging_dir": os.path.join(self.tmpdir, "staging"),
                "store": { "type": "local", "dir": os.path.join(self.tmpdir, "store") }
            },
            "packer": { "pkgtype": "bagit", "format": "zip" }
        }
        self.reports = []

    def curator(self, invoked=Invoked.BATCH):
        return Curator(self.config, invoked, objects=self.objects, reporter=self.reports.append)

    def test_policies(self):
        self.assertEqual(TransmitAIP.suspend, SuspendPolicy.INTERACTIVE)
        self.assertFalse(TransmitAIP.distributive)
        self.assertTrue(TransmitSingleAIP.distributive)

    def test_from_config(self):
        pl = transmit.from_config(self.config, self.objects)
        self.assertEqual(pl.group, "aipstore")
        self.assertTrue(pl.should_skip("123456789/9"))
        self.assertIsInstance(pl.replicas, ReplicaManager)
        self.assertIsInstance(pl.replicas.store, LocalObjectStore)
        self.assertIsInstance(pl.packers, PackerFactory)

        del self.config['replicate']['group']
        with self.assertRaises(ConfigurationException):
            transmit.from_config(self.config, self.objects)

    def test_transmit_item(self):
        cur = self.curator()
        cur.add_task(TransmitAIP(), "transmit")
        run = cur.curate(["123456789/2"])

        self.assertEqual(len(run.results), 1)
        res = run.results[0]
        self.assertEqual(res.status, Status.SUCCESS)
        self.assertTrue(res.result.startswith("Created AIP: '123456789-2.zip' size: "))
        stored = Path(self.tmpdir) / "store" / "aipstore" / "123456789-2.zip"
        self.assertTrue(stored.is_file())
        self.assertIn("size: %d" % stored.stat().st_size, res.result)

        # staged copy is cleaned up
        self.assertFalse((Path(self.tmpdir) / "staging" / "aipstore" / "123456789-2.zip").exists())

        # a second transmission of unchanged content is not sent
        run = cur.curate(["123456789/2"])
        self.assertEqual(run.results[0].status, Status.SUCCESS)
        self.assertEqual(run.results[0].result,
                         "Checksum matched. New AIP was not transmitted for 123456789/2")

    def test_transmit_skipped(self):
        self.objects.add(DigitalObject("123456789/9"))
        cur = self.curator()
        cur.add_task(TransmitAIP(), "transmit")
        run = cur.curate(["123456789/9"])

        self.assertEqual(run.results[0].status, Status.SKIP)
        self.assertEqual(self.reports, ["This item is in the replicate skiplist: 123456789/9"])
        self.assertFalse((Path(self.tmpdir) / "staging" / "aipstore" / "123456789-9.zip").exists())

    def test_transmit_collection(self):
        cur = self.curator()
        cur.add_task(TransmitAIP(), "transmit")
        run = cur.curate(["123456789/1"])

        self.assertEqual([r.objid for r in run.results], ["123456789/1", "123456789/2", "123456789/3"])
        self.assertEqual(run.results[0].status, Status.SUCCESS)
        self.assertEqual(run.results[1].status, Status.SUCCESS)

        # the restricted item cannot be packaged
        self.assertEqual(run.results[2].status, Status.ERROR)
        self.assertIn("123456789/3", run.results[2].result)
        self.assertFalse(run.suspended)
        self.assertTrue(run.failed)

    def test_transmit_single(self):
        cur = self.curator()
        cur.add_task(TransmitSingleAIP(), "transmit")
        run = cur.curate(["123456789/1"])

        self.assertEqual([r.objid for r in run.results], ["123456789/1"])
        self.assertEqual(run.results[0].status, Status.SUCCESS)
        self.assertFalse(run.failed)

    def test_suspend_interactive(self):
        cur = self.curator(Invoked.INTERACTIVE)
        cur.add_task(TransmitAIP(), "transmit")
        run = cur.curate(["123456789/3", "123456789/2"])

        self.assertTrue(run.suspended)
        self.assertEqual(len(run.results), 1)
        self.assertEqual(run.results[0].status, Status.ERROR)
        self.assertEqual(run.suspended_by.objid, "123456789/3")

    def test_store_failure_does_not_suspend(self):
        replicas, packers, packer = make_mocks(TransferOutcome.failed())
        pl = TransmissionPipeline(replicas, packers, "aips")
        cur = self.curator(Invoked.INTERACTIVE)
        cur.add_task(TransmitAIP(pl), "transmit")
        run = cur.curate(["a", "b"])

        self.assertFalse(run.suspended)
        self.assertEqual([r.status for r in run.results], [Status.UNSET, Status.UNSET])
        self.assertEqual(self.reports, ["Transmission to DuraCloud failed for: a",
                                        "Transmission to DuraCloud failed for: b"])


class TestMalformedObjects(test.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp(dir=tmpdir.name))
        objdir = self.tmpdir / "objects"
        for name, rec in (("1-2", '{ "type": "item", "metadata": [1, 2] }'),
                          ("1-3", '{ "type": "collection", "members": 5 }'),
                          ("1%2D2", '{ "type": "item", "metadata": { "title": "dashed" } }')):
            (objdir / name).mkdir(parents=True)
            (objdir / name / "object.json").write_text(rec)
        self.config = {
            "objects": { "type": "fs", "dir": str(objdir) },
            "replicate": {
                "group": { "aip": { "name": "aipstore" } },
                "staging_dir": str(self.tmpdir / "staging"),
                "store": { "type": "local", "dir": str(self.tmpdir / "store") }
            }
        }
        self.pipeline = transmit.from_config(self.config)

    def test_bad_record_values(self):
        for objid in ("1/2", "1/3"):
            with self.assertRaises(AIPProcessingError) as cm:
                self.pipeline.process(objid)
            self.assertIsInstance(cm.exception.cause, PersistenceError)
            self.assertEqual(cm.exception.id, objid)

    def test_dashed_id_kept_apart(self):
        status, msg = self.pipeline.process("1-2")
        self.assertEqual(status, Status.SUCCESS)
        self.assertEqual(msg, "Created AIP: '1%%2D2.zip' size: %d" %
                         (self.tmpdir / "store" / "aipstore" / "1%2D2.zip").stat().st_size)
        self.assertFalse((self.tmpdir / "store" / "aipstore" / "1-2.zip").exists())


if __name__ == '__main__':
    test.main()
