from setuptools import find_packages, setup


install_requires = [
    'websocket-client',
]

setup(
    name='dsbridge',
    version='1.0.0',
    description='Samba passdb and idmap backends for the dscached directory cache',
    packages=find_packages(include=['dsbridge', 'dsbridge.*']),
    python_requires='>=3.11',
    license='BSD',
    platforms='any',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
    ],
    install_requires=install_requires,
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'dsbridgectl = dsbridge.main:main',
        ],
    },
)
