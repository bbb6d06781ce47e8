"""
Exceptions raised by the replication system
"""

__all__ = [
    'ReplicateException', 'ConfigurationException', 'StateException', 'ObjectNotFound',
    'AuthorizationError', 'PersistenceError', 'PackingError', 'ReplicaStoreError',
    'ReplicaServerError', 'ReplicaClientError', 'AIPProcessingError'
]

class ReplicateException(Exception):
    """
    the base exception for errors raised by the replication system.
    """
    def __init__(self, msg=None, cause=None, sys=None):
        """
        create the exception.

        :param str   msg:  a message describing the problem; if not provided, one is derived
                           from ``cause``
        :param Exception cause:  a caught exception that represents the underlying cause of the problem.
        :param SystemInfoMixin sys: a SystemInfoMixin instance for the system under which the exception
                           occurred
        """
        if not msg:
            if cause:
                msg = str(cause)
            else:
                msg = "Unknown replication system error"
        super(ReplicateException, self).__init__(msg)
        self.cause = cause
        self.system = sys

class ConfigurationException(ReplicateException):
    """
    a class indicating an error in the configuration of the replication system
    """
    def __init__(self, msg=None, cause=None, sys=None):
        if not msg and not cause:
            msg = "Unknown configuration error"
        super(ConfigurationException, self).__init__(msg, cause, sys)

class StateException(ReplicateException):
    """
    a class indicating that the replication system or environment is in
    an uncorrectable state preventing proper processing
    """
    pass

class ObjectNotFound(ReplicateException):
    """
    an exception indicating that a requested digital object does not exist in its object source
    """
    def __init__(self, objid, msg=None, cause=None, sys=None):
        if not msg:
            msg = "Digital object not found: " + str(objid)
        super(ObjectNotFound, self).__init__(msg, cause, sys)
        self.id = objid

class AuthorizationError(ReplicateException):
    """
    an exception indicating that the system is not authorized to read a digital object (or part
    of one) for packaging.
    """
    def __init__(self, objid=None, msg=None, cause=None, sys=None):
        if not msg:
            msg = "Not authorized to access object"
            if objid:
                msg += ": " + str(objid)
        super(AuthorizationError, self).__init__(msg, cause, sys)
        self.id = objid

class PersistenceError(ReplicateException):
    """
    an exception indicating a failure in the layer that persists the digital objects (and their
    metadata) being packaged.
    """
    def __init__(self, objid=None, msg=None, cause=None, sys=None):
        if not msg:
            msg = "Failed to load object from storage"
            if objid:
                msg += ": " + str(objid)
            if cause:
                msg += ": " + str(cause)
        super(PersistenceError, self).__init__(msg, cause, sys)
        self.id = objid

class PackingError(ReplicateException):
    """
    an exception indicating that an archive file could not be written for a digital object.
    """
    def __init__(self, msg=None, name=None, cause=None, sys=None):
        if not msg:
            msg = "Unknown packaging error"
            if name:
                msg += " for " + name
        super(PackingError, self).__init__(msg, cause, sys)
        self.name = name

class ReplicaStoreError(ReplicateException):
    """
    an exception indicating a problem using a replica store
    """
    def __init__(self, resource=None, http_code=None, http_reason=None, message=None, cause=None):
        if not message:
            if resource:
                message = f"Trouble accessing {resource} from the replica store"
            else:
                message = "Problem accessing the replica store"
            if http_code or http_reason:
                message += ":"
                if http_code:
                    message += " "+str(http_code)
                if http_reason:
                    message += " "+str(http_reason)
            elif cause:
                message += ": "+str(cause)

        super(ReplicaStoreError, self).__init__(message, cause)
        self.resource = resource
        self.code = http_code
        self.reason = http_reason

class ReplicaServerError(ReplicaStoreError):
    """
    an exception indicating an error occurred on the server-side of a remote replica store
    """
    pass

class ReplicaClientError(ReplicaStoreError):
    """
    an exception indicating that a remote replica store rejected a request as erroneous
    (e.g. because of bad credentials).
    """
    def __init__(self, resource, http_code, http_reason, message=None, cause=None):
        if not message:
            message = "client-side replica store error occurred"
            if resource:
                message += " while processing " + resource
            message += ": {0} {1}".format(http_code, http_reason)
        super(ReplicaClientError, self).__init__(resource, http_code, http_reason, message, cause)

class AIPProcessingError(ReplicateException):
    """
    an exception indicating that an AIP could not be produced or staged for a digital object.
    The underlying problem (e.g. an :py:class:`AuthorizationError` or :py:class:`PersistenceError`)
    is available via the ``cause`` property.
    """
    def __init__(self, objid, cause=None, msg=None, sys=None):
        if not msg:
            msg = "Failed to process AIP for " + str(objid)
            if cause:
                msg += ": " + str(cause)
        super(AIPProcessingError, self).__init__(msg, cause, sys)
        self.id = objid
