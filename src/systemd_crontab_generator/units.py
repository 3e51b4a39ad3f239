import os
from typing import NamedTuple, Optional

from .config import Features
from .discovery import SourceKind

MARKER = '# Automatically generated by systemd-crontab-generator'
WANTS_DIR = 'cron.target.wants'


class GeneratedUnit(NamedTuple):
    name:str
    timer:str
    service:str
    scriptlet:Optional[str]
    # directory the files live in, and the .wants directory of cron.target
    directories:tuple[str, str]

    def files(self) -> dict[str, str]:
        '''absolute path -> content, in the order they should be written'''
        target = self.directories[0]
        result = dict()
        if self.scriptlet is not None:
            result[os.path.join(target, self.name + '.sh')] = self.scriptlet
        result[os.path.join(target, self.name + '.service')] = self.service
        result[os.path.join(target, self.name + '.timer')] = self.timer
        return result

    def links(self) -> dict[str, str]:
        '''symlink path -> what it points to'''
        target, wants = self.directories
        name = self.name + '.timer'
        return {os.path.join(wants, name): os.path.join(target, name)}


def escape(value:str) -> str:
    '''keep systemd from expanding specifiers'''
    return value.replace('%', '%%')


def environment_string(env:dict[str, str]) -> str:
    line = []
    for k, v in sorted(env.items()):
        v = escape(v)
        if ' ' in v or '"' in v or '\\' in v:
            v = v.replace('\\', '\\\\').replace('"', '\\"')
            line.append('"%s=%s"' % (k, v))
        else:
            line.append('%s=%s' % (k, v))
    return ' '.join(line)


def generate_scriptlet(job, target_dir:str) -> tuple[str, Optional[str]]:
    '''ExecStart= value, and the scriptlet text when one is needed'''
    if len(job.command) == 1 and os.path.isfile(job.command[0]):
        return escape(job.command[0]), None

    scriptlet = os.path.join(target_dir, '%s.sh' % job.unit_name)
    code = '%s\n%s\n' % (MARKER, ' '.join(job.command))
    return '%s %s' % (escape(job.shell), scriptlet), code


def generate_service(job, execstart:str, features:Features) -> str:
    identity = job.identity
    lines = list()
    lines.append(MARKER)
    lines.append('[Unit]')
    lines.append('Description=[Cron] "%s"' % escape(job.line))
    lines.append('Documentation=man:systemd-crontab-generator(8)')
    lines.append('SourcePath=%s' % job.origin.path)
    if 'MAILTO' in job.environment and not job.environment['MAILTO']:
        pass # mails explicitely disabled
    elif not features.sendmail:
        pass # mails automaticaly disabled
    else:
        lines.append('OnFailure=cron-failure@%i.service')
    if not identity.is_root or job.origin.kind is SourceKind.USER:
        lines.append('Requires=systemd-user-sessions.service')
        if identity.home:
            lines.append('RequiresMountsFor=%s' % identity.home)
    lines.append('')

    lines.append('[Service]')
    lines.append('Type=oneshot')
    lines.append('IgnoreSIGPIPE=false')
    lines.append('KillMode=process')
    if features.loglevelmax != 'no':
        lines.append('LogLevelMax=%s' % features.loglevelmax)
    lines.append('ExecStart=%s' % execstart)
    if identity.home:
        lines.append('WorkingDirectory=%s' % identity.home)
    if job.environment:
        lines.append('Environment=%s' % environment_string(job.environment))
    if identity.explicit:
        lines.append('User=%s' % identity.user)
    if job.batch:
        lines.append('CPUSchedulingPolicy=idle')
        lines.append('IOSchedulingClass=idle')

    return '\n'.join(lines) + '\n'


def generate_timer(job) -> str:
    lines = list()
    lines.append(MARKER)
    lines.append('[Unit]')
    lines.append('Description=[Timer] "%s"' % escape(job.line))
    lines.append('Documentation=man:systemd-crontab-generator(8)')
    lines.append('PartOf=cron.target')
    lines.append('SourcePath=%s' % job.origin.path)
    if job.testremoved:
        lines.append('ConditionFileIsExecutable=%s' % job.testremoved)
    lines.append('')
    lines.extend(job.timer.lines())

    return '\n'.join(lines) + '\n'


def render(job, target_dir:str, features:Features) -> GeneratedUnit:
    assert job.unit_name and job.timer and job.identity
    execstart, scriptlet = generate_scriptlet(job, target_dir)
    return GeneratedUnit(job.unit_name,
                         generate_timer(job),
                         generate_service(job, execstart, features),
                         scriptlet,
                         (target_dir, os.path.join(target_dir, WANTS_DIR)))
