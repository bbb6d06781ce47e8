import os, time, logging, tarfile, zipfile, tempfile
import unittest as test

from replicate.pack import serialize as ser
from replicate.exceptions import PackingError, StateException

tmpdir = tempfile.TemporaryDirectory(prefix="_test_serialize.")
log = logging.getLogger("REPL.test.serialize")

def tearDownModule():
    tmpdir.cleanup()

def make_bag(parent, name="item-42"):
    bagdir = os.path.join(parent, name)
    os.makedirs(os.path.join(bagdir, "data", "content"))
    with open(os.path.join(bagdir, "bagit.txt"), 'w') as fd:
        fd.write("BagIt-Version: 1.0\n")
    with open(os.path.join(bagdir, "data", "metadata.json"), 'w') as fd:
        fd.write('{ "id": "item-42" }\n')
    with open(os.path.join(bagdir, "data", "content", "readme.txt"), 'w') as fd:
        fd.write("Read me.\n")
    return bagdir

class TestSerialize(test.TestCase):

    def setUp(self):
        self.workdir = tempfile.mkdtemp(dir=tmpdir.name)
        self.bagdir = make_bag(os.path.join(self.workdir))
        self.outdir = os.path.join(self.workdir, "out")
        os.mkdir(self.outdir)

    def test_zip(self):
        out = ser.zip_serialize(self.bagdir, self.outdir, log)
        self.assertEqual(out, os.path.join(self.outdir, "item-42.zip"))
        with zipfile.ZipFile(out) as zf:
            names = zf.namelist()
            self.assertIn("item-42/bagit.txt", names)
            self.assertIn("item-42/data/content/readme.txt", names)
            self.assertEqual(zf.read("item-42/data/content/readme.txt"), b"Read me.\n")
            self.assertEqual(names, sorted(names))

        out = ser.zip_serialize(self.bagdir, self.outdir, log, "aip.zip")
        self.assertEqual(os.path.basename(out), "aip.zip")

    def test_tgz(self):
        out = ser.tgz_serialize(self.bagdir, self.outdir, log)
        self.assertEqual(out, os.path.join(self.outdir, "item-42.tgz"))
        with tarfile.open(out) as tf:
            names = tf.getnames()
            self.assertIn("item-42/data/metadata.json", names)
            for m in tf.getmembers():
                self.assertEqual(m.mtime, 0)
                self.assertEqual(m.uid, 0)

    def test_reproducible(self):
        for fmt, func in (("zip", ser.zip_serialize), ("tgz", ser.tgz_serialize)):
            first = func(self.bagdir, self.outdir, log, "first."+fmt)

            # same content written at a later time into a different location
            time.sleep(1.1)
            otherdir = os.path.join(self.workdir, "other"+fmt)
            os.mkdir(otherdir)
            bagdir = make_bag(otherdir)
            second = func(bagdir, self.outdir, log, "second."+fmt)

            with open(first, 'rb') as fd1, open(second, 'rb') as fd2:
                self.assertEqual(fd1.read(), fd2.read(), "%s output differs" % fmt)

    def test_missing_dirs(self):
        with self.assertRaises(StateException):
            ser.zip_serialize(os.path.join(self.workdir, "goob"), self.outdir, log)
        with self.assertRaises(StateException):
            ser.tgz_serialize(self.bagdir, os.path.join(self.workdir, "goob"), log)

class TestSerializer(test.TestCase):

    def setUp(self):
        self.workdir = tempfile.mkdtemp(dir=tmpdir.name)
        self.bagdir = make_bag(self.workdir)

    def test_default(self):
        s = ser.DefaultSerializer()
        self.assertEqual(sorted(s.formats), ["tgz", "zip"])
        self.assertEqual(s.extension_for("zip"), "zip")
        out = s.serialize(self.bagdir, self.workdir, "zip")
        self.assertTrue(os.path.isfile(out))

        with self.assertRaises(PackingError):
            s.serialize(self.bagdir, self.workdir, "7z")
        with self.assertRaises(PackingError):
            s.extension_for("7z")

    def test_register(self):
        calls = []
        def fake(bagdir, destdir, log, destfile=None):
            calls.append((bagdir, destdir, destfile))
            return os.path.join(destdir, destfile or "fake.tar.gz")

        s = ser.Serializer()
        self.assertEqual(s.formats, [])
        s.register("targz", fake, "tar.gz")
        self.assertEqual(s.extension_for("targz"), "tar.gz")
        self.assertEqual(s.serialize(self.bagdir, self.workdir, "targz"),
                         os.path.join(self.workdir, "fake.tar.gz"))
        self.assertEqual(calls, [(self.bagdir, self.workdir, None)])

        with self.assertRaises(TypeError):
            s.register("bad", "not a function")


if __name__ == '__main__':
    test.main()
