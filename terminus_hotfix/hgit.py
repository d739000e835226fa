"Provides the HGit class"

import git
from git.exc import GitCommandError

from terminus_hotfix import utils
from terminus_hotfix.errors import CommandExecutionError


class HGit:
    """
    Manages the git operations on the scratch working copy of a site.

    Each operation is announced, run exactly once, and either succeeds or
    raises CommandExecutionError carrying the command and its exit status.
    Nothing is retried.

    Examples:
        hgit = HGit('/tmp/terminus-hotfix-plugin-temp/my-site')
        hgit.clone('ssh://codeserver.dev.xxx@.../repository.git')
        hgit.checkout('pantheon_live_7')
        hgit.checkout_new_branch('hotfix')
        hgit.push_branch('hotfix')
    """
    def __init__(self, work_dir):
        self.__work_dir = str(work_dir)
        self.__git_repo: git.Repo = None

    def __str__(self):
        return f'[Git] {self.__work_dir}'

    @property
    def work_dir(self):
        "The working copy directory"
        return self.__work_dir

    @property
    def repo(self) -> git.Repo:
        "The underlying git.Repo, opened on first use"
        if self.__git_repo is None:
            self.__git_repo = git.Repo(self.__work_dir)
        return self.__git_repo

    @staticmethod
    def __failure(command, err: GitCommandError):
        status = err.status if isinstance(err.status, int) else 1
        return CommandExecutionError(command, status, str(err.stderr or ''))

    def __git(self, cmd, *args):
        command = ' '.join(['git', cmd, *args])
        utils.notice(f"Running {command}")
        try:
            return getattr(self.repo.git, cmd)(*args)
        except GitCommandError as err:
            raise self.__failure(command, err) from err

    def clone(self, url):
        "Clones url into the working copy directory"
        command = f"git clone {url} {self.__work_dir}"
        utils.notice(f"Running {command}")
        try:
            self.__git_repo = git.Repo.clone_from(url, self.__work_dir)
        except GitCommandError as err:
            raise self.__failure(command, err) from err
        return self

    def fetch_tags(self):
        "Fetches all the tags of origin"
        return self.__git('fetch', '--tags')

    def checkout(self, ref):
        "Checks out an existing branch or tag"
        return self.__git('checkout', ref)

    def checkout_new_branch(self, branch_name):
        "Creates branch_name at HEAD and checks it out"
        return self.__git('checkout', '-b', branch_name)

    def push_branch(self, branch_name, set_upstream=True):
        "Pushes branch_name to origin, tracking it when set_upstream"
        if set_upstream:
            return self.__git('push', '-u', 'origin', branch_name)
        return self.__git('push', 'origin', branch_name)

    def push(self, ref, force=False):
        "Pushes a branch or a tag to origin"
        if force:
            return self.__git('push', 'origin', ref, '--force')
        return self.__git('push', 'origin', ref)

    def create_tag(self, tag_name, message):
        "Creates the annotated tag tag_name at HEAD"
        return self.__git('tag', '-a', tag_name, '-m', message)

    def rebase(self, ref, strategy=None):
        "Rebases the current branch onto ref, with -X strategy when given"
        if strategy:
            return self.__git('rebase', '-X', strategy, ref)
        return self.__git('rebase', ref)
