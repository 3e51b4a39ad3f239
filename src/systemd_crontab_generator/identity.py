import pwd
from typing import Callable, NamedTuple, Optional, Union

from .errors import FatalError, ResolveError


class Identity(NamedTuple):
    '''who a job runs as; user None means the init system default'''
    user:Optional[str]
    uid:Optional[int]
    gid:Optional[int]
    home:Optional[str]
    shell:str = '/bin/sh'

    @property
    def explicit(self) -> bool:
        return self.user is not None

    @property
    def is_root(self) -> bool:
        return self.user is None or self.uid == 0


DEFAULT = Identity(None, None, None, '/root')


class IdentityResolver:
    '''run-as user lookups, cached for the duration of a run

    An unknown user is an error for that job only: it is never
    replaced by root.'''

    def __init__(self, lookup:Callable[[str], pwd.struct_passwd]=pwd.getpwnam,
                 default:Identity=DEFAULT) -> None:
        self.lookup = lookup
        self.default = default
        self.cache:dict[str, Union[Identity, KeyError]] = {}

    def resolve(self, username:Optional[str], origin=None) -> Identity:
        if username is None:
            return self.default

        if username not in self.cache:
            try:
                pw = self.lookup(username)
                self.cache[username] = Identity(pw.pw_name, pw.pw_uid, pw.pw_gid,
                                                pw.pw_dir, pw.pw_shell)
            except KeyError as e:
                self.cache[username] = e
            except OSError as e:
                raise FatalError('user database unavailable: %s' % e)

        found = self.cache[username]
        if isinstance(found, KeyError):
            raise ResolveError("unknown user '%s'" % username, origin)
        return found
