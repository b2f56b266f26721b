from setuptools import setup


setup(
    name='multilisten',
    version='1.0',
    description='Serve an ASGI app on several addresses at once',
    packages=['multilisten', 'multilisten.mocks', 'multilisten.utils'],
    install_requires=[
        'trio>=0.23',
        'hypercorn[trio]',
        'starlette',
        'cryptography',
        'attrs',
        'arrow',
        'click',
        'platformdirs',
        ],
    extras_require={
        'dev': [
            'pytest',
            'pytest-trio',
            'httpx',
        ]
    },
    entry_points={'console_scripts': [
        'multilisten = multilisten.cli:main',
        ]},
    )
