"""
An ObjectStore that holds replicas in a remote store accessed via a simple REST interface.

The remote service is expected to provide the following for each stored object at the URL
``{service_endpoint}/{group}/{objname}``:

``HEAD``
    returns 200 with the stored object's checksum in a response header (``Content-MD5`` by
    default, holding a hex-encoded MD5 digest) or 404 if the object does not exist
``PUT``
    stores the request body as the object; the checksum header is sent with the request so that
    the service can verify what it received
``DELETE``
    removes the object
"""
import logging
from collections.abc import Mapping
from pathlib import Path

import requests

from ..exceptions import (ConfigurationException, ReplicaStoreError, ReplicaServerError,
                          ReplicaClientError)
from ..utils.datamgmt import checksum_of
from .. import system as _sys
from . import ObjectStore, TransferOutcome

class RESTObjectStore(ObjectStore):
    """
    an ObjectStore client for a remote REST replica store.

    Configuration parameters:

    ``service_endpoint``
        (required) the base URL of the store service
    ``checksum_header``
        the name of the HTTP header that carries an object's checksum (default: ``Content-MD5``)
    ``checksum_alg``
        the algorithm used for the checksum (default: ``md5``)
    ``timeout``
        seconds to wait for the service to respond (default: 60)
    ``auth``
        a dictionary describing how to authenticate; its ``type`` property can be ``none``,
        ``userpass`` (requiring ``user`` and ``pass``), or ``bearer`` (requiring ``token``).
    """

    def __init__(self, config: Mapping=None, log=None):
        super(RESTObjectStore, self).__init__(config, log)
        if not self.cfg.get('service_endpoint'):
            raise ConfigurationException("RESTObjectStore: missing required config parameter: "+
                                         "service_endpoint")
        self.baseurl = self.cfg['service_endpoint'].rstrip('/')
        self.timeout = self.cfg.get('timeout', 60)
        if not self.log:
            self.log = logging.getLogger(_sys.system_abbrev).getChild("store.remote")

        self._authkw = {}
        self._authhdr = {}
        self._setup_auth(self.cfg.get('auth'))

    def _setup_auth(self, config: Mapping=None):
        self._authkw = {}
        self._authhdr = {}

        if not config or config.get('type', '') is None:
            return      # no authentication required

        authtype = config.get('type', 'bearer')
        if isinstance(authtype, str):
            authtype = authtype.lower()

        if authtype == "none":
            pass

        elif authtype == "userpass":
            self._authkw = { "auth": (config.get('user'), config.get('pass')) }
            if not all(self._authkw["auth"]):
                raise ConfigurationException("RESTObjectStore: authentication type userpass requires "+
                                             "both 'user' and 'pass' config parameters")

        elif authtype == "bearer":
            token = config.get("token")
            if not token:
                raise ConfigurationException("RESTObjectStore: authentication type bearer requires "+
                                             "'token' config parameter")
            self._authhdr = { "Authorization": f"Bearer {token}" }

        else:
            raise ConfigurationException("RESTObjectStore: authentication 'type' param value not "+
                                         "supported: "+str(authtype))

    @property
    def name(self):
        return self.cfg.get('name', self.baseurl)

    @property
    def checksum_alg(self):
        return self.cfg.get('checksum_alg', 'md5')

    @property
    def checksum_header(self):
        return self.cfg.get('checksum_header', 'Content-MD5')

    def _url(self, group, objname):
        return "%s/%s/%s" % (self.baseurl, group, objname)

    def _headers(self, extra=None):
        out = dict(self._authhdr)
        if extra:
            out.update(extra)
        return out

    def _check_resp(self, resp, resource):
        if resp.status_code >= 500:
            raise ReplicaServerError(resource, resp.status_code, resp.reason)
        elif resp.status_code >= 400:
            raise ReplicaClientError(resource, resp.status_code, resp.reason)

    def object_checksum(self, group: str, objname: str) -> str:
        resource = group + '/' + objname
        try:
            resp = requests.head(self._url(group, objname), headers=self._headers(),
                                 timeout=self.timeout, **self._authkw)
        except requests.RequestException as ex:
            raise ReplicaStoreError(resource, cause=ex)

        if resp.status_code == 404:
            return None
        self._check_resp(resp, resource)
        return resp.headers.get(self.checksum_header)

    def object_exists(self, group: str, objname: str) -> bool:
        resource = group + '/' + objname
        try:
            resp = requests.head(self._url(group, objname), headers=self._headers(),
                                 timeout=self.timeout, **self._authkw)
        except requests.RequestException as ex:
            raise ReplicaStoreError(resource, cause=ex)

        if resp.status_code == 404:
            return False
        self._check_resp(resp, resource)
        return True

    def transfer_object(self, group: str, filepath) -> TransferOutcome:
        filepath = Path(filepath)
        resource = group + '/' + filepath.name
        try:
            localsum = checksum_of(filepath, self.checksum_alg)
            remotesum = self.object_checksum(group, filepath.name)
            if remotesum and remotesum.lower() == localsum:
                self.log.info("%s: remote copy has matching checksum; not transmitting", resource)
                return TransferOutcome.matched()

            size = filepath.stat().st_size
            with open(filepath, 'rb') as fd:
                resp = requests.put(self._url(group, filepath.name), data=fd,
                                    headers=self._headers({ self.checksum_header: localsum,
                                                            "Content-Length": str(size) }),
                                    timeout=self.timeout, **self._authkw)
            self._check_resp(resp, resource)

        except requests.RequestException as ex:
            self.log.error("%s: transmission to %s failed: %s", resource, self.name, str(ex))
            return TransferOutcome.failed()
        except ReplicaStoreError as ex:
            self.log.error("%s: transmission to %s failed: %s", resource, self.name, str(ex))
            return TransferOutcome.failed()
        except OSError as ex:
            self.log.error("%s: unable to read AIP for transmission: %s", resource, str(ex))
            return TransferOutcome.failed()

        return TransferOutcome.transferred(size)

    def remove_object(self, group: str, objname: str) -> bool:
        resource = group + '/' + objname
        try:
            resp = requests.delete(self._url(group, objname), headers=self._headers(),
                                   timeout=self.timeout, **self._authkw)
        except requests.RequestException as ex:
            raise ReplicaStoreError(resource, cause=ex)

        if resp.status_code == 404:
            return False
        self._check_resp(resp, resource)
        return True
