# see https://github.com/karlicoss/pymplate for up-to-date reference
from setuptools import setup, find_namespace_packages # type: ignore


def main() -> None:
    # works with both ordinary and namespace packages
    pkgs = find_namespace_packages('src')
    pkg = min(pkgs)
    setup(
        name=pkg,
        use_scm_version={
            'version_scheme': 'python-simplified-semver',
            'local_scheme': 'dirty-tag',
            # so it's installable from a source tree without git metadata
            'fallback_version': '0.1.0',
        },
        setup_requires=['setuptools_scm'],

        # otherwise mypy won't work
        # https://mypy.readthedocs.io/en/stable/installed_packages.html#making-pep-561-compatible-packages
        zip_safe=False,

        packages=pkgs,
        package_dir={'': 'src'},
        # necessary so that package works with mypy
        package_data={pkg: ['py.typed']},

        description='Strips tracking parameters, redirects and AMP wrappers from urls',

        python_requires='>=3.8',
        install_requires=[
            'appdirs', # for portable user directories detection
            'more_itertools',

            *DEPS_EXTRACT,
            *DEPS_SERVER,
        ],
        extras_require={
            'testing': [
                'pytest',
                'hypothesis',

                'httpx', # for fastapi.testclient

                'ruff',

                'mypy',
            ],
            'optional': [
                'logzero', # pretty colored logging
            ],
        },
        entry_points={
            'console_scripts': ['tidyurl=tidyurl.__main__:main'],
        }
    )

# for finding urls in plain text (tidyurl text)
DEPS_EXTRACT = [
    'urlextract',
]

DEPS_SERVER = [
    'fastapi',
    'uvicorn[standard]',
]


if __name__ == "__main__":
    main()
