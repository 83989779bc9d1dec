import runpy
import socket
import unittest
from pathlib import Path
from unittest.mock import patch

from ocr_gateway.__main__ import FALLBACK_HOST, bind_listening_socket, bind_socket

ASGI_SCRIPT = Path(__file__).resolve().parents[2] / "asgi.py"


class TestServerBind(unittest.TestCase):

    def test_binds_configured_host(self):
        sock = bind_listening_socket("127.0.0.1", 0)
        try:
            self.assertEqual(sock.getsockname()[0], "127.0.0.1")
        finally:
            sock.close()

    def test_falls_back_to_all_interfaces(self):
        fallback = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        with patch("ocr_gateway.__main__.bind_socket", side_effect=[OSError("address not available"), fallback]) as bind:
            with self.assertLogs("server", level="WARNING"):
                sock = bind_listening_socket("192.0.2.10", 8080)
        fallback.close()
        self.assertIs(sock, fallback)
        self.assertEqual(bind.call_args_list[1].args, (FALLBACK_HOST, 8080))

    def test_exits_when_no_address_can_be_bound(self):
        with patch("ocr_gateway.__main__.bind_socket", side_effect=OSError("address in use")):
            with self.assertRaises(SystemExit) as ctx:
                bind_listening_socket("127.0.0.1", 8080)
        self.assertEqual(ctx.exception.code, 1)

    def test_port_in_use_is_an_os_error(self):
        taken = bind_socket("127.0.0.1", 0)
        try:
            taken.listen()
            port = taken.getsockname()[1]
            with self.assertRaises(OSError):
                bind_socket("127.0.0.1", port)
        finally:
            taken.close()


@unittest.skipUnless(ASGI_SCRIPT.exists(), "asgi.py is only present in a source checkout")
class TestAsgiEntryPoint(unittest.TestCase):

    def test_script_run_binds_before_building_the_app(self):
        with patch("ocr_gateway.__main__.main") as main, patch("ocr_gateway.app.create_app") as create_app:
            runpy.run_path(str(ASGI_SCRIPT), run_name="__main__")
        main.assert_called_once_with()
        create_app.assert_not_called()

    def test_import_exposes_the_app(self):
        with patch("ocr_gateway.__main__.main") as main, patch("ocr_gateway.app.create_app") as create_app:
            namespace = runpy.run_path(str(ASGI_SCRIPT), run_name="asgi")
        main.assert_not_called()
        create_app.assert_called_once_with()
        self.assertIs(namespace["app"], create_app.return_value)
