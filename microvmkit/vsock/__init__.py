"""Host-side vsock dialing and guest-side vsock listening with retries."""