"""
Utility functions managing data and files
"""
import hashlib, math

__all__ = [ 'checksum_of', 'formatBytes' ]

def checksum_of(filepath, alg: str="sha256", bufsize: int=10240000):
    """
    return the checksum for the given file

    :param str|Path filepath:  the path of the file to calculate the checksum for
    :param str           alg:  the name of the hash algorithm to use (as recognized by hashlib);
                               the default is "sha256".
    :param int       bufsize:  the memory buffer size to use when reading the file.
                               The default is 10 MB; multithreaded applications should
                               consider a smaller value.
    """
    if not isinstance(bufsize, int):
        raise TypeError("checksum_of(): bufsize arg must be an integer")
    if bufsize < 1:
        raise ValueError("checksum_of(): bufsize arg must be a positive integer")
    sum = hashlib.new(alg)
    with open(filepath, mode='rb') as fd:
        while True:
            buf = fd.read(bufsize)
            if not buf: break
            sum.update(buf)
    return sum.hexdigest()

def formatBytes(nb, numAfterDecimal=-1):
    """
    format a byte count for display using metric byte units.
    :param int nb:  the number of bytes to format
    :param int numAfterDecimal:  the number of digits to appear after the decimal if the value is
                                 greater than 1000; if less than zero (default), the number will be
                                 1 or 2.
    :rtype: str
    """
    if not isinstance(numAfterDecimal, int):
        numAfterDecimal = -1
    if not isinstance(nb, int):
        return ''
    if nb == 0:
        return "0 Bytes"
    if nb == 1:
        return "1 Byte"
    base = 1000
    e = ['Bytes', 'kB', 'MB', 'GB', 'TB', 'PB', 'EB', 'ZB', 'YB']
    f = math.floor(math.log10(nb) / math.log10(base))
    v = nb / math.pow(base, f)
    d = numAfterDecimal
    if d < 0:
        if f == 0:   # less than 1 kilobyte
            d = 0
        elif v < 10.0:
            d = 2
        else:
            d = 1
        v = round(v, d)
    return "%s %s" % ( (("%%.%df" % d) % v), e[f] )
