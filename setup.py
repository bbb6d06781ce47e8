import os, sys
from setuptools import setup, find_packages
from setuptools.command.build_py import build_py as _build

CLASSIFIERS = [
    'Operating System :: POSIX',
    'Operating System :: MacOS :: MacOS X',
    'Intended Audience :: Science/Research',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Topic :: System :: Archiving :: Backup'
]

def get_version():
    out = "dev"
    pkgdir = os.environ.get('PACKAGE_DIR', os.path.dirname(os.path.abspath(__file__)))
    versfile = os.path.join(pkgdir, 'VERSION')
    if os.path.exists(versfile):
        with open(versfile) as fd:
            parts = fd.readline().split()
        if len(parts) > 0:
            out = parts[-1]
    return out

def write_version_mod(version, pkgdir='replicate'):
    versmodf = os.path.join(pkgdir, "version.py")
    print("setting version for "+pkgdir)
    with open(versmodf, 'w') as fd:
        fd.write('"""')
        fd.write("""
An identification of the subsystem version.  Note that this module file gets 
(over-) written by the build process.  
""")
        fd.write('"""\n\n')
        fd.write('__version__ = "')
        fd.write(version)
        fd.write('"\n')

class build(_build):

    def run(self):
        write_version_mod(get_version())
        _build.run(self)

setup(name='oar-replicate',
      version=get_version(),
      description="replicate: creation and replication of Archival Information Packages to replica stores",
      packages=find_packages(include=['replicate', 'replicate.*']),
      install_requires=[ "requests", "PyYAML" ],
      extras_require={ "test": [ "pytest" ] },
      entry_points={ "console_scripts": [ "replicate = replicate.cli.replicate:run" ] },
      cmdclass={'build_py': build},
      classifiers=CLASSIFIERS,
      python_requires=">=3.8",
      zip_safe=False
)
